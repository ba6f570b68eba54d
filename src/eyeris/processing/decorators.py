import functools
import time
from typing import Any, Callable, Coroutine, TypeVar

from eyeris.core.errors import EyerisError

T = TypeVar("T")


def instrument_stage(
    stage_name: str,
) -> Callable[[Callable[..., Coroutine[Any, Any, T]]], Callable[..., Coroutine[Any, Any, T]]]:
    """
    A decorator for instrumenting one async stage of the image pipeline.

    Logs `<stage>.start`, then `<stage>.finished` with the duration, or
    `<stage>.failed` with the duration and error before re-raising. The
    decorated method's owner must expose a structlog `logger` attribute.
    """

    def decorator(func: Callable[..., Coroutine[Any, Any, T]]) -> Callable[..., Coroutine[Any, Any, T]]:
        @functools.wraps(func)
        async def wrapper(self, *args: Any, **kwargs: Any) -> T:
            log = self.logger.bind(stage=stage_name)
            log.debug(f"{stage_name}.start")
            start_time = time.perf_counter()

            try:
                result = await func(self, *args, **kwargs)
            except EyerisError as e:
                duration_ms = round((time.perf_counter() - start_time) * 1000)
                log.warning(f"{stage_name}.failed", duration_ms=duration_ms, **e.to_dict())
                raise
            except Exception as e:
                duration_ms = round((time.perf_counter() - start_time) * 1000)
                log.error(f"{stage_name}.failed", error=str(e), exc_info=True, duration_ms=duration_ms)
                raise

            duration_ms = round((time.perf_counter() - start_time) * 1000)
            log.info(f"{stage_name}.finished", duration_ms=duration_ms)
            return result

        return wrapper

    return decorator
