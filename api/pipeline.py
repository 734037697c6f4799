"""
api/pipeline.py -- Explicit admission pipeline run before routing.

Each stage is a plain function (request, context) -> Admission. run_pipeline()
threads the AuthContext through the stages in order and stops at the first
denial. The HTTP middleware in api/main.py calls it once per request and turns
a denial into a response; nothing is registered through framework hooks here.

Stages:
  rate_limit_stage -- per-client fixed-window admission (RateLimiter). Runs
      for public and protected routes alike, before authentication, so a
      flood of bad tokens is throttled exactly like any other traffic.

Bearer-token identity is not a pipeline stage: only protected routes need it,
and they request it through api.dependencies.get_current_subject, which uses
the same Admission shape.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from fastapi import Request

from api.dependencies import client_key
from auth.errors import RateLimited
from auth.middleware import Admission, AuthContext
from auth.ratelimit import RateLimiter

logger = logging.getLogger("inventory.api")

Stage = Callable[[Request, AuthContext], Admission]

# Load balancer and monitoring probes must not be throttled.
EXEMPT_PATHS = frozenset({"/api/v1/health"})


def rate_limit_stage(request: Request, context: AuthContext) -> Admission:
    if request.url.path in EXEMPT_PATHS:
        return Admission(admitted=True, context=context)
    limiter: RateLimiter = request.app.state.rate_limiter
    decision = limiter.hit(context.client)
    if decision.allowed:
        return Admission(admitted=True, context=context)
    logger.warning("Rate limit exceeded for %s on %s", context.client, request.url.path)
    return Admission(admitted=False, context=context, failure=RateLimited(context.client, decision.retry_after))


DEFAULT_STAGES: tuple[Stage, ...] = (rate_limit_stage,)


def run_pipeline(request: Request, stages: Sequence[Stage] = DEFAULT_STAGES) -> Admission:
    """Run stages in order with a fresh AuthContext for this request."""
    admission = Admission(admitted=True, context=AuthContext(client=client_key(request)))
    for stage in stages:
        admission = stage(request, admission.context)
        if not admission.admitted:
            break
    return admission
