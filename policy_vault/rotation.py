"""
Batch Access Rotation — move many bundles to a new policy.

Handles are rotated in batches of ``batch_size``; rotations inside a batch
run concurrently, batches run one after another. A failing handle is logged
and counted but never aborts the run. Each rotation is independent, so a
partially completed run can be resumed by passing the remaining handles.

Security Note:
    Never log plaintext, ciphertext or key material.
"""
import asyncio
import logging
from collections.abc import Iterable, Mapping
from typing import Any, Optional, Union

from .exceptions import ConcurrentModification
from .models import PolicyDescriptor
from .orchestrator import Orchestrator

logger = logging.getLogger("policy_vault")


async def rotate_access_batch(
    orchestrator: Orchestrator,
    handles: Iterable[str],
    new_policy: Union[PolicyDescriptor, Mapping[str, Any]],
    batch_size: Optional[int] = None,
) -> dict:
    """Rotate every handle in ``handles`` to ``new_policy``.

    Args:
        orchestrator: Orchestrator bound to the gateway and store.
        handles: Document handles to rotate.
        new_policy: Policy that replaces the current one on each bundle.
        batch_size: Number of rotations run concurrently; defaults to the
            orchestrator's ``rotation_batch_size``.

    Returns:
        Stats dict with keys: total, rotated, errors, conflicts.

    Raises:
        ValueError: If batch_size is lower than 1.
    """
    if batch_size is None:
        batch_size = orchestrator.rotation_batch_size
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")

    pending = list(handles)
    stats = {"total": 0, "rotated": 0, "errors": 0, "conflicts": 0}

    logger.info(
        "Starting access rotation of %d bundle(s) (batch_size=%d)",
        len(pending), batch_size,
    )

    for offset in range(0, len(pending), batch_size):
        batch = pending[offset:offset + batch_size]
        batch_num = (offset // batch_size) + 1
        logger.info("Processing batch %d (%d handles)", batch_num, len(batch))

        results = await asyncio.gather(
            *(orchestrator.rotate_access(handle, new_policy) for handle in batch),
            return_exceptions=True,
        )
        for handle, result in zip(batch, results):
            stats["total"] += 1
            if isinstance(result, ConcurrentModification):
                logger.error(
                    "Concurrent update rotating handle=%s: %s", handle, result,
                )
                stats["conflicts"] += 1
            elif isinstance(result, Exception):
                logger.error("Error rotating handle=%s: %s", handle, result)
                stats["errors"] += 1
            elif isinstance(result, BaseException):
                raise result
            else:
                stats["rotated"] += 1

    logger.info("Access rotation complete: %s", stats)
    return stats
