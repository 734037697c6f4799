"""auth/ -- Authentication and admission-control core for the inventory service.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/ or inventory/.
api/ imports from auth/, not the other way around.
"""
