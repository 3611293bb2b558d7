import logging
from typing import Optional, Type, TypeVar

from pydantic import ValidationError

from ..cache import ResultCache
from ..config import Settings
from ..errors import RemoteError
from ..http_client import RemoteQueryClient
from ..models import ErrorKind, SourceResult, SourceStatus

logger = logging.getLogger("fpr.cache")

R = TypeVar("R", bound=SourceResult)


def error_kind_of(exc: RemoteError) -> ErrorKind:
    return ErrorKind(getattr(exc, "kind", ErrorKind.TRANSPORT.value))


class CachedSource:
    """Shared plumbing for one remote source: client, cache and settings."""

    def __init__(self, client: RemoteQueryClient, cache: ResultCache, settings: Settings):
        self.client = client
        self.cache = cache
        self.settings = settings

    async def _cached(self, key: str, model: Type[R]) -> Optional[R]:
        raw = await self.cache.get_async(key)
        if raw is None:
            return None
        try:
            return model.model_validate(raw)
        except ValidationError as exc:
            logger.warning("discarding unreadable cache entry %s: %s", key, exc)
            return None

    async def _remember(self, key: str, result: SourceResult) -> None:
        # Errors are never cached; the next request retries the source.
        if result.status is SourceStatus.ERROR:
            return
        await self.cache.set_async(key, result.model_dump(mode="json"))
