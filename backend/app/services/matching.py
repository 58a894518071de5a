# psychologist selection — which profiles a caller may see and in what order
# the server query and the client mirror both go through these helpers so they agree

from typing import Iterable, Optional

# mongo sort spec: rating desc, then completed assessments desc
PSYCHOLOGIST_SORT = [("rating", -1), ("completed_assessments", -1)]


def visibility_query(role: Optional[str]) -> dict:
    """mongo filter for psychologists visible to a caller with the given role"""
    if role == "admin":
        return {}
    return {"approved": True}


def is_visible(doc: dict, role: Optional[str]) -> bool:
    if role == "admin":
        return True
    return doc.get("approved") is True


def rank_key(doc: dict) -> tuple:
    """sort key matching PSYCHOLOGIST_SORT when used with an ascending sort"""
    return (-float(doc.get("rating") or 0.0), -int(doc.get("completed_assessments") or 0))


def rank_psychologists(docs: Iterable[dict], role: Optional[str] = None) -> list[dict]:
    """filter to visible profiles and order them for selection"""
    visible = [d for d in docs if is_visible(d, role)]
    return sorted(visible, key=rank_key)
