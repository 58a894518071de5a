# local mirror — json-file store with the slice of the motor collection api the workflow uses
# keeps the client usable offline; the same AssessmentWorkflow guards run against it

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
from pymongo.results import DeleteResult, InsertOneResult, UpdateResult

logger = logging.getLogger(__name__)

COLLECTIONS = ("users", "psychologists", "children", "assessment_requests", "game_results", "ai_analysis")

# same uniqueness rules as the server indexes
UNIQUE_FIELDS = {
    "psychologists": ("psychologist_id",),
    "children": ("child_id",),
    "assessment_requests": ("request_id",),
    "game_results": ("request_id",),
    "ai_analysis": ("request_id",),
}


def _matches(doc: dict, query: dict) -> bool:
    for key, cond in query.items():
        value = doc.get(key)
        if isinstance(cond, dict) and cond and all(k.startswith("$") for k in cond):
            for op, arg in cond.items():
                if op == "$in" and value not in arg:
                    return False
                if op == "$nin" and value in arg:
                    return False
                if op == "$ne" and value == arg:
                    return False
                if op == "$exists" and (key in doc) != bool(arg):
                    return False
        elif value != cond:
            return False
    return True


def _apply_update(doc: dict, update: dict) -> None:
    for field, value in update.get("$set", {}).items():
        doc[field] = value
    for field, amount in update.get("$inc", {}).items():
        doc[field] = (doc.get(field) or 0) + amount
    for field in update.get("$unset", {}):
        doc.pop(field, None)


def _sort_value(value: Any) -> tuple:
    # none sorts before everything, like mongo
    return (0, "") if value is None else (1, value)


class MirrorCursor:
    """result of find(): sortable, limit-able, async-iterable"""

    def __init__(self, docs: list[dict]):
        self._docs = docs
        self._limit = 0

    def sort(self, key_or_list, direction: Optional[int] = None):
        keys = key_or_list if isinstance(key_or_list, list) else [(key_or_list, direction or 1)]
        # stable sorts applied from the last key to the first
        for key, order in reversed(keys):
            self._docs.sort(key=lambda d: _sort_value(d.get(key)), reverse=order < 0)
        return self

    def limit(self, n: int):
        self._limit = n
        return self

    def _results(self) -> list[dict]:
        return self._docs[: self._limit] if self._limit else self._docs

    async def to_list(self, length: Optional[int] = None) -> list[dict]:
        docs = self._results()
        return docs[:length] if length else list(docs)

    def __aiter__(self):
        self._iter = iter(self._results())
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


class MirrorCollection:
    def __init__(self, mirror: "LocalMirror", name: str):
        self._mirror = mirror
        self.name = name

    @property
    def _docs(self) -> list[dict]:
        return self._mirror.data[self.name]

    def _check_unique(self, doc: dict, ignore: Optional[dict] = None) -> None:
        for field in UNIQUE_FIELDS.get(self.name, ()):
            if doc.get(field) is None:
                continue
            for other in self._docs:
                if other is not ignore and other.get(field) == doc.get(field):
                    raise DuplicateKeyError(f"{self.name}.{field} duplicate key: {doc.get(field)}")
        # one active request per child
        if self.name == "assessment_requests" and doc.get("active"):
            for other in self._docs:
                if other is not ignore and other.get("active") and other.get("child_id") == doc.get("child_id"):
                    raise DuplicateKeyError(f"child {doc.get('child_id')} already has an active request")

    def _first(self, query: dict) -> Optional[dict]:
        return next((d for d in self._docs if _matches(d, query)), None)

    async def find_one(self, query: dict) -> Optional[dict]:
        doc = self._first(query)
        return copy.deepcopy(doc) if doc is not None else None

    def find(self, query: Optional[dict] = None) -> MirrorCursor:
        query = query or {}
        return MirrorCursor([copy.deepcopy(d) for d in self._docs if _matches(d, query)])

    async def count_documents(self, query: dict) -> int:
        return sum(1 for d in self._docs if _matches(d, query))

    async def insert_one(self, doc: dict) -> InsertOneResult:
        self._check_unique(doc)
        stored = copy.deepcopy(doc)
        self._docs.append(stored)
        self._mirror.save()
        return InsertOneResult(stored.get("_id"), True)

    async def update_one(self, query: dict, update: dict) -> UpdateResult:
        doc = self._first(query)
        if doc is None:
            return UpdateResult({"n": 0, "nModified": 0}, True)
        candidate = copy.deepcopy(doc)
        _apply_update(candidate, update)
        self._check_unique(candidate, ignore=doc)
        doc.clear()
        doc.update(candidate)
        self._mirror.save()
        return UpdateResult({"n": 1, "nModified": 1}, True)

    async def find_one_and_update(
        self, query: dict, update: dict, return_document: bool = ReturnDocument.BEFORE
    ) -> Optional[dict]:
        doc = self._first(query)
        if doc is None:
            return None
        before = copy.deepcopy(doc)
        await self.update_one(query, update)
        return copy.deepcopy(doc) if return_document == ReturnDocument.AFTER else before

    async def replace_one(self, query: dict, replacement: dict, upsert: bool = False) -> UpdateResult:
        doc = self._first(query)
        if doc is None:
            if not upsert:
                return UpdateResult({"n": 0, "nModified": 0}, True)
            await self.insert_one(replacement)
            return UpdateResult({"n": 1, "nModified": 0, "upserted": replacement.get("_id")}, True)
        self._check_unique(replacement, ignore=doc)
        doc.clear()
        doc.update(copy.deepcopy(replacement))
        self._mirror.save()
        return UpdateResult({"n": 1, "nModified": 1}, True)

    async def delete_one(self, query: dict) -> DeleteResult:
        doc = self._first(query)
        if doc is None:
            return DeleteResult({"n": 0}, True)
        self._docs.remove(doc)
        self._mirror.save()
        return DeleteResult({"n": 1}, True)

    async def delete_many(self, query: dict) -> DeleteResult:
        keep = [d for d in self._docs if not _matches(d, query)]
        removed = len(self._docs) - len(keep)
        self._mirror.data[self.name] = keep
        if removed:
            self._mirror.save()
        return DeleteResult({"n": removed}, True)


class LocalMirror:
    """offline copy of the canonical collections, persisted as one json file (or memory only)"""

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path).expanduser() if path else None
        self.data: dict[str, list[dict]] = {name: [] for name in COLLECTIONS}
        if self.path and self.path.exists():
            self.load()
        for name in COLLECTIONS:
            setattr(self, name, MirrorCollection(self, name))

    def load(self):
        with open(self.path, "r", encoding="utf-8") as f:
            stored = json.load(f)
        for name in COLLECTIONS:
            self.data[name] = list(stored.get(name, []))
        logger.info(f"Loaded local mirror from {self.path}")

    def save(self):
        if not self.path:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(self.data, f, indent=2)
        os.replace(tmp, self.path)

    def clear(self):
        self.data = {name: [] for name in COLLECTIONS}
        self.save()
