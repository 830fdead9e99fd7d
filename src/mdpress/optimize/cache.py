"""On-disk cache of optimization results.

Each ``(owner, repo)`` key maps to two sibling files under the cache dir:

    {owner}-{repo}.md          the compressed content, stored raw
    {owner}-{repo}.meta.json   OptimizationMeta as JSON

Keeping content out of the JSON avoids escaping large markdown bodies and
lets the content be shown without parsing anything.

There is no locking. Two processes optimizing the same key at once can
interleave their reads and writes. That is acceptable for a single-user CLI,
and a torn entry is repaired on the next read.
"""

from __future__ import annotations

import dataclasses
import datetime
import hashlib
import json
import logging
import pathlib

logger = logging.getLogger("mdpress.optimize.cache")

_CONTENT_SUFFIX = ".md"
_META_SUFFIX = ".meta.json"


def hash_content(content: str) -> str:
    """SHA-256 hex digest of *content*."""
    return hashlib.sha256(content.encode()).hexdigest()


@dataclasses.dataclass
class OptimizationMeta:
    source_hash: str
    optimized_at: datetime.datetime
    original_tokens: int
    optimized_tokens: int
    model: str = ""
    deterministic: bool = False

    def to_json(self) -> str:
        data = dataclasses.asdict(self)
        data["optimized_at"] = self.optimized_at.isoformat()
        return json.dumps(data, indent=2)

    @classmethod
    def from_json(cls, raw: str) -> OptimizationMeta:
        """Parse metadata; raises ``ValueError`` on anything malformed."""
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("metadata is not a JSON object")
        try:
            return cls(
                source_hash=str(data["source_hash"]),
                optimized_at=datetime.datetime.fromisoformat(data["optimized_at"]),
                original_tokens=int(data["original_tokens"]),
                optimized_tokens=int(data["optimized_tokens"]),
                model=str(data.get("model", "")),
                deterministic=bool(data.get("deterministic", False)),
            )
        except (KeyError, TypeError) as exc:
            raise ValueError(f"invalid metadata: {exc}") from exc


@dataclasses.dataclass
class CacheLookup:
    """Outcome of a cache read.

    ``repaired`` is True when an orphaned or corrupt entry was found and
    removed; the lookup is then a miss.
    """

    content: str = ""
    meta: OptimizationMeta | None = None
    repaired: bool = False

    @property
    def hit(self) -> bool:
        return bool(self.content) and self.meta is not None


class OptimizationCache:
    def __init__(self, cache_dir: pathlib.Path) -> None:
        self.cache_dir = pathlib.Path(cache_dir)

    def content_path(self, owner: str, repo: str) -> pathlib.Path:
        return self.cache_dir / f"{owner}-{repo}{_CONTENT_SUFFIX}"

    def meta_path(self, owner: str, repo: str) -> pathlib.Path:
        return self.cache_dir / f"{owner}-{repo}{_META_SUFFIX}"

    def read(self, owner: str, repo: str) -> CacheLookup:
        """Return the cached content and metadata for *(owner, repo)*.

        A missing entry is an empty lookup. Content that does not decode, or
        content without readable metadata, is removed and reported as a
        repaired miss.
        """
        try:
            content = self.content_path(owner, repo).read_text(encoding="utf-8")
        except FileNotFoundError:
            return CacheLookup()
        except ValueError:
            logger.debug("Undecodable cache content for %s-%s", owner, repo)
            self.clear(owner, repo)
            return CacheLookup(repaired=True)

        try:
            meta = self.read_meta(owner, repo)
        except (OSError, ValueError):
            return CacheLookup(repaired=self.reconcile(owner, repo))

        return CacheLookup(content=content, meta=meta)

    def read_meta(self, owner: str, repo: str) -> OptimizationMeta:
        """Read only the metadata; raises ``OSError``/``ValueError``."""
        raw = self.meta_path(owner, repo).read_text(encoding="utf-8")
        return OptimizationMeta.from_json(raw)

    def reconcile(self, owner: str, repo: str) -> bool:
        """Remove an entry whose two files do not form a valid pair.

        Returns True if anything was deleted.
        """
        content_path = self.content_path(owner, repo)
        meta_path = self.meta_path(owner, repo)
        if not content_path.exists() and not meta_path.exists():
            return False

        try:
            self.read_meta(owner, repo)
            meta_ok = True
        except (OSError, ValueError):
            meta_ok = False

        try:
            content_path.read_text(encoding="utf-8")
            content_ok = True
        except (OSError, ValueError):
            content_ok = False

        if meta_ok and content_ok:
            return False

        logger.debug("Repairing corrupt cache entry %s-%s", owner, repo)
        self.clear(owner, repo)
        return True

    def write(
        self, owner: str, repo: str, content: str, meta: OptimizationMeta
    ) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.content_path(owner, repo).write_text(content, encoding="utf-8")
        self.meta_path(owner, repo).write_text(meta.to_json(), encoding="utf-8")

    def is_stale(self, owner: str, repo: str, source_hash: str) -> bool:
        """True when metadata is unreadable or was built from other content."""
        try:
            meta = self.read_meta(owner, repo)
        except (OSError, ValueError):
            return True
        return meta.source_hash != source_hash

    def exists(self, owner: str, repo: str) -> bool:
        return (
            self.content_path(owner, repo).is_file()
            and self.meta_path(owner, repo).is_file()
        )

    def clear(self, owner: str, repo: str) -> None:
        """Delete both files for the key; missing files are ignored."""
        self.content_path(owner, repo).unlink(missing_ok=True)
        self.meta_path(owner, repo).unlink(missing_ok=True)

    def list_cached(self) -> list[str]:
        """Return cached ``owner-repo`` names, sorted."""
        if not self.cache_dir.is_dir():
            return []
        return sorted(
            p.name[: -len(_CONTENT_SUFFIX)]
            for p in self.cache_dir.iterdir()
            if p.name.endswith(_CONTENT_SUFFIX) and p.is_file()
        )
