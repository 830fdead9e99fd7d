"""The optimization pipeline.

cache lookup → preprocess → extract anchors → compress → validate →
accept/reject → cache write.

Anchors are always extracted from and validated against the *original*
content, never the preprocessed form.
"""

from __future__ import annotations

import dataclasses
import datetime
import logging

import mdpress.errors
import mdpress.optimize.anchors
import mdpress.optimize.cache
import mdpress.optimize.client
import mdpress.optimize.preprocess
import mdpress.optimize.tokens

logger = logging.getLogger("mdpress.optimize.optimizer")


@dataclasses.dataclass
class Options:
    target: int = 0  # 0 = half the original estimate
    deterministic: bool = False  # preprocessing only, no API call
    force: bool = False  # bypass cache and accept strict-anchor loss
    no_cache: bool = False  # skip cache read and write
    model: str = ""


@dataclasses.dataclass
class Result:
    original_content: str
    optimized_content: str = ""
    stats: mdpress.optimize.tokens.TokenStats = dataclasses.field(
        default_factory=mdpress.optimize.tokens.TokenStats
    )
    preprocess_stats: mdpress.optimize.preprocess.PreprocessStats = (
        dataclasses.field(default_factory=mdpress.optimize.preprocess.PreprocessStats)
    )
    preserved_anchors: list[str] = dataclasses.field(default_factory=list)
    missing_strict: list[str] = dataclasses.field(default_factory=list)
    missing_soft: list[str] = dataclasses.field(default_factory=list)
    from_cache: bool = False
    deterministic: bool = False

    @property
    def missing_anchors(self) -> list[str]:
        return sorted(self.missing_strict + self.missing_soft)


class Optimizer:
    """Runs the pipeline against one cache.

    Clients are created through *client_factory* and memoized per model.
    The memo only saves reconstruction; ``clear_clients()`` may be called
    at any time and closes what it drops. A *client* passed in is used for
    every model and is never closed here; its owner closes it. The memo is
    not thread-safe, so use one instance per worker.
    """

    def __init__(
        self,
        cache: mdpress.optimize.cache.OptimizationCache,
        *,
        client: mdpress.optimize.client.Compressor | None = None,
        client_factory: mdpress.optimize.client.ClientFactory | None = None,
        default_model: str = mdpress.optimize.client.DEFAULT_MODEL,
    ) -> None:
        self.cache = cache
        self._client = client
        self._client_factory = client_factory or mdpress.optimize.client.CompressionClient
        self._default_model = default_model
        self._clients: dict[str, mdpress.optimize.client.Compressor] = {}

    def get_client(self, model: str) -> mdpress.optimize.client.Compressor:
        """Return a client for *model*, building one on first use."""
        if self._client is not None:
            return self._client
        key = model or self._default_model
        client = self._clients.get(key)
        if client is None:
            client = self._client_factory(model)
            self._clients[key] = client
        return client

    def clear_clients(self) -> None:
        """Close and forget every client built by the factory."""
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            client.close()

    def close(self) -> None:
        """Release factory-built clients. A client passed in is left open."""
        self.clear_clients()

    def __enter__(self) -> Optimizer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def optimize(
        self,
        content: str,
        owner: str,
        repo: str,
        opts: Options | None = None,
        *,
        timeout: float | None = None,
    ) -> Result:
        """Compress *content* and check that strict anchors survived.

        Raises ``AuthFailed`` or ``OptimizationFailed`` from the client, and
        ``ValidationFailed`` when strict anchors were lost without ``force``.
        """
        if opts is None:
            opts = Options()

        result = Result(original_content=content, deterministic=opts.deterministic)
        result.stats.before = mdpress.optimize.tokens.count_tokens(content)
        source_hash = mdpress.optimize.cache.hash_content(content)

        if not opts.force and not opts.no_cache:
            cached = self._cache_hit(owner, repo, source_hash, opts)
            if cached is not None:
                result.optimized_content = cached.content
                result.stats.after = cached.meta.optimized_tokens
                result.from_cache = True
                return result

        preprocessed, result.preprocess_stats = mdpress.optimize.preprocess.preprocess(
            content
        )
        anchors = mdpress.optimize.anchors.extract_anchors(content)

        target = opts.target or result.stats.before // 2

        model_used = ""
        if opts.deterministic:
            optimized = preprocessed
        else:
            client = self.get_client(opts.model)
            model_used = client.model
            optimized = client.optimize(preprocessed, target, anchors, timeout=timeout)

        validation = mdpress.optimize.anchors.validate_anchors_categorized(
            content, optimized
        )
        result.preserved_anchors = validation.preserved
        result.missing_strict = validation.missing_strict
        result.missing_soft = validation.missing_soft

        if validation.has_strict_failures():
            if not opts.force:
                raise mdpress.errors.ValidationFailed(validation.missing_strict)
            logger.warning(
                "Accepting loss of %d strict anchors (force)",
                len(validation.missing_strict),
            )

        result.optimized_content = optimized
        result.stats.after = mdpress.optimize.tokens.count_tokens(optimized)

        if not opts.no_cache:
            meta = mdpress.optimize.cache.OptimizationMeta(
                source_hash=source_hash,
                optimized_at=datetime.datetime.now(tz=datetime.UTC),
                original_tokens=result.stats.before,
                optimized_tokens=result.stats.after,
                model=model_used,
                deterministic=opts.deterministic,
            )
            try:
                self.cache.write(owner, repo, optimized, meta)
            except (OSError, UnicodeError):
                logger.debug("Failed to write optimization cache", exc_info=True)

        return result

    def _cache_hit(
        self,
        owner: str,
        repo: str,
        source_hash: str,
        opts: Options,
    ) -> mdpress.optimize.cache.CacheLookup | None:
        try:
            lookup = self.cache.read(owner, repo)
        except (OSError, ValueError):
            logger.debug("Cache read failed for %s-%s", owner, repo, exc_info=True)
            return None

        if lookup.repaired:
            logger.debug("Discarded corrupt cache entry for %s-%s", owner, repo)
        if not lookup.hit or lookup.meta is None:
            return None

        meta = lookup.meta
        if meta.source_hash != source_hash:
            return None
        if opts.model and opts.model != meta.model:
            return None
        if opts.deterministic != meta.deterministic:
            return None

        logger.info("Using cached optimization for %s-%s", owner, repo)
        return lookup
