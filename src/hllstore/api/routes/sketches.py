"""
Sketch Endpoints

Add values to keys and read distinct-count estimates.
"""

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from typing import List
import logging

from hllstore.counter import HyperLogLogCounter

logger = logging.getLogger(__name__)

router = APIRouter()


class AddValuesRequest(BaseModel):
    """Values to add to one key."""
    values: List[str] = Field(..., min_length=1)


class KeysRequest(BaseModel):
    """Keys for a union or intersection count."""
    keys: List[str] = Field(..., min_length=1)


def get_counter(request: Request) -> HyperLogLogCounter:
    return request.app.state.counter


@router.post("/sketches/union")
async def count_union(body: KeysRequest, counter: HyperLogLogCounter = Depends(get_counter)):
    """Estimated distinct values across all keys (missing keys are skipped)."""
    return {
        "keys": body.keys,
        "count": await counter.count_union(body.keys),
    }


@router.post("/sketches/intersection")
async def count_intersection(body: KeysRequest, counter: HyperLogLogCounter = Depends(get_counter)):
    """Estimated values present in every key (0 if any key is missing)."""
    return {
        "keys": body.keys,
        "count": await counter.count_intersection(body.keys),
    }


@router.post("/sketches/flush")
async def flush(counter: HyperLogLogCounter = Depends(get_counter)):
    """Write pending adds to the store now."""
    pending = len(counter.pending_keys)
    await counter.flush()
    return {"status": "flushed", "keys_flushed": pending}


@router.get("/sketches/metrics")
async def metrics(counter: HyperLogLogCounter = Depends(get_counter)):
    """Batcher metrics."""
    return counter.get_metrics()


@router.post("/sketches/{key}/values", status_code=202)
async def add_values(
    key: str,
    body: AddValuesRequest,
    counter: HyperLogLogCounter = Depends(get_counter),
):
    """
    Add values to a key.

    Accepted means buffered: the values are visible to counts after the
    next flush.
    """
    for value in body.values:
        await counter.add(key, value)

    logger.debug(f"Added {len(body.values)} value(s) to '{key}'")
    return {
        "status": "accepted",
        "key": key,
        "values_received": len(body.values),
    }


@router.get("/sketches/{key}/count")
async def count(key: str, counter: HyperLogLogCounter = Depends(get_counter)):
    """Estimated distinct values added to a key (0 if it does not exist)."""
    return {
        "key": key,
        "count": await counter.count(key),
    }
