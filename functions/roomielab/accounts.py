"""
Account deletion cascade.

Each phase fans out one delete per matched document and waits for all of them
before the next phase starts. There is no rollback: a failure leaves the
account partially deleted and is re-raised after every delete in the failing
phase has settled.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable

from roomielab.db import DbClient, Document
from roomielab.firebase_constants import (
    DESIGNS_COLLECTION,
    PROJECTS_COLLECTION,
    USERS_COLLECTION,
    favorites_path,
    recently_viewed_path,
)
from roomielab.identity import AuthClient

logger = logging.getLogger(__name__)


def _delete_all(
    db: DbClient,
    pool: ThreadPoolExecutor,
    collection: str,
    docs: Iterable[Document],
) -> int:
    docs = list(docs)
    futures = {
        pool.submit(db.delete, collection, doc.id): doc.id for doc in docs
    }
    first_error: Exception | None = None
    for future, doc_id in futures.items():
        exc = future.exception()
        if exc is not None:
            logger.error("Failed to delete %s/%s: %s", collection, doc_id, exc)
            first_error = first_error or exc
    if first_error is not None:
        raise first_error
    return len(docs)


def delete_user_data(
    db: DbClient, auth_client: AuthClient, uid: str, *, max_workers: int = 8
) -> dict:
    """Delete everything owned by ``uid``, then the identity itself.

    Returns the number of documents removed per phase.
    """
    phases = (
        (PROJECTS_COLLECTION, lambda: db.query(PROJECTS_COLLECTION, [("userId", "==", uid)])),
        (DESIGNS_COLLECTION, lambda: db.query(DESIGNS_COLLECTION, [("userId", "==", uid)])),
        (favorites_path(uid), lambda: db.query(favorites_path(uid))),
        (recently_viewed_path(uid), lambda: db.query(recently_viewed_path(uid))),
    )
    deleted = {}
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        for collection, fetch in phases:
            deleted[collection] = _delete_all(db, pool, collection, fetch())

    db.delete(USERS_COLLECTION, uid)
    auth_client.delete_user(uid)
    logger.info("Account deleted for UID %s: %s", uid, deleted)
    return deleted
