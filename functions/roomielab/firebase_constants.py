"""Firestore collection names.

Firestore has no schema; these constants keep collection paths consistent
across handlers.
"""

USERS_COLLECTION = "users"
PROJECTS_COLLECTION = "projects"
DESIGNS_COLLECTION = "designs"
FURNITURE_COLLECTION = "furnitureItem"

FAVORITES_SUBCOLLECTION = "favorites"
RECENTLY_VIEWED_SUBCOLLECTION = "recently_viewed"


def favorites_path(uid: str) -> str:
    return f"{USERS_COLLECTION}/{uid}/{FAVORITES_SUBCOLLECTION}"


def recently_viewed_path(uid: str) -> str:
    return f"{USERS_COLLECTION}/{uid}/{RECENTLY_VIEWED_SUBCOLLECTION}"
