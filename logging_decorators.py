# logging_decorators.py
from __future__ import annotations
import time, functools, inspect
from typing import Any, Callable, Dict, Iterable
from loguru import logger

# Message bodies and image data URIs are user content; keep them out of the log
_REDACT_DEFAULT = {"content", "images", "text", "api_key", "authorization"}

def _redact(obj: Any, redact_keys: set[str], max_len: int) -> Any:
    """Truncate long strings and mask sensitive keys."""
    if isinstance(obj, dict):
        return {k: ("******" if str(k).lower() in redact_keys else _redact(v, redact_keys, max_len))
                for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_redact(x, redact_keys, max_len) for x in obj[:10]] + (["..."] if len(obj) > 10 else [])
    if isinstance(obj, str):
        return obj if len(obj) <= max_len else obj[:max_len] + f"...(+{len(obj) - max_len} chars)"
    if hasattr(obj, "sender") and hasattr(obj, "content"):
        # Message: show who sent it and how big it is, never the text
        return f"<{type(obj).__name__} {getattr(obj.sender, 'value', obj.sender)} len={len(obj.content or '')}>"
    return obj

def _summary(ret: Any) -> Dict[str, Any]:
    if ret is None:
        return {"return": None}
    if isinstance(ret, str):
        return {"len": len(ret)}
    if isinstance(ret, (list, tuple, dict)):
        return {"items": len(ret)}
    return {"type": type(ret).__name__}

def log_call(
    name: str | None = None,
    *,
    level: str = "DEBUG",
    slow_ms: int = 500,
    redact: Iterable[str] = _REDACT_DEFAULT,
    arg_max_len: int = 80,
):
    """
    Log entry/exit, args, duration and failures of the wrapped callable.
    Coroutine functions are awaited inside the wrapper, so the duration covers the whole call.
    """
    redact_keys = {str(k).lower() for k in redact}

    def decorator(fn: Callable):
        if getattr(fn, "__logged__", False):
            return fn

        qual = name or fn.__qualname__
        sig = inspect.signature(fn)

        def _args(args, kwargs):
            try:
                ba = sig.bind_partial(*args, **kwargs)
                call_args = {k: v for k, v in ba.arguments.items() if k not in {"self", "cls"}}
                return _redact(call_args, redact_keys, arg_max_len)
            except TypeError:
                return "<uninspectable>"

        def _done(lg, t0, ret):
            dur_ms = (time.perf_counter() - t0) * 1000.0
            if dur_ms >= slow_ms:
                lg.warning("✓ {} done in {:.0f}ms (SLOW) {}", qual, dur_ms, _summary(ret))
            else:
                lg.log(level, "✓ {} done in {:.0f}ms {}", qual, dur_ms, _summary(ret))

        def _failed(lg, t0, e):
            dur_ms = (time.perf_counter() - t0) * 1000.0
            lg.log(level, "✗ {} failed in {:.0f}ms: {}: {}", qual, dur_ms, type(e).__name__, e)

        if inspect.iscoroutinefunction(fn):
            @functools.wraps(fn)
            async def awrapper(*args, **kwargs):
                lg = logger.opt(depth=1)
                lg.log(level, "→ {} args={}", qual, _args(args, kwargs))
                t0 = time.perf_counter()
                try:
                    ret = await fn(*args, **kwargs)
                except Exception as e:
                    _failed(lg, t0, e)
                    raise
                _done(lg, t0, ret)
                return ret

            awrapper.__logged__ = True
            return awrapper

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            lg = logger.opt(depth=1)
            lg.log(level, "→ {} args={}", qual, _args(args, kwargs))
            t0 = time.perf_counter()
            try:
                ret = fn(*args, **kwargs)
            except Exception as e:
                _failed(lg, t0, e)
                raise
            _done(lg, t0, ret)
            return ret

        wrapper.__logged__ = True
        return wrapper
    return decorator
