"""
api/routes/v1/items.py -- Inventory item routes.

Routes (in registration order to avoid FastAPI path capture conflicts):
  GET    /items                   -- list all items
  POST   /items                   -- create item
  POST   /items/delete-multiple   -- delete several items by id
  GET    /items/{item_id}         -- item detail
  PUT    /items/{item_id}         -- replace item
  DELETE /items/{item_id}         -- delete item

Plain data access; the interesting part is the router-level dependency that
puts every route behind the bearer-token gate.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from api.dependencies import get_current_subject
from api.models import DeleteManyRequest, DeleteManyResponse, ItemIn, ItemOut
from inventory.store import ItemStore

logger = logging.getLogger("inventory.api")

# Router-level dependency applies to every route registered on this router,
# so individual handlers don't each need to repeat Depends(get_current_subject).
router = APIRouter(dependencies=[Depends(get_current_subject)])

_NOT_FOUND = {"code": "not_found", "message": "Item not found."}


def _store(request: Request) -> ItemStore:
    return request.app.state.item_store


@router.get("/items", response_model=list[ItemOut])
def list_items(request: Request) -> list[ItemOut]:
    return [ItemOut.from_domain(i) for i in _store(request).list()]


@router.post("/items", response_model=ItemOut, status_code=201)
def create_item(request: Request, body: ItemIn) -> ItemOut:
    store = _store(request)
    item_id = store.create(body.to_domain())
    logger.info("Item %d created by %s", item_id, request.state.subject)
    return ItemOut.from_domain(store.get(item_id))


@router.post("/items/delete-multiple", response_model=DeleteManyResponse)
def delete_items(request: Request, body: DeleteManyRequest) -> DeleteManyResponse:
    """Delete every listed item. Unknown ids are skipped, not reported as errors."""
    deleted = _store(request).delete_many(sorted(set(body.ids)))
    logger.info("%d items deleted by %s", deleted, request.state.subject)
    return DeleteManyResponse(deleted=deleted)


@router.get("/items/{item_id}", response_model=ItemOut)
def get_item(request: Request, item_id: int) -> ItemOut:
    item = _store(request).get(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return ItemOut.from_domain(item)


@router.put("/items/{item_id}", response_model=ItemOut)
def update_item(request: Request, item_id: int, body: ItemIn) -> ItemOut:
    store = _store(request)
    if not store.update(item_id, body.to_domain()):
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    return ItemOut.from_domain(store.get(item_id))


@router.delete("/items/{item_id}")
def delete_item(request: Request, item_id: int) -> dict:
    if not _store(request).delete(item_id):
        raise HTTPException(status_code=404, detail=_NOT_FOUND)
    logger.info("Item %d deleted by %s", item_id, request.state.subject)
    return {"message": "Item deleted."}
