"""
Hierarchical runtime tracing for the patchwork generator.

Nested, timed log lines for each run, tick and export step so a long
composition can be followed without attaching a debugger.
"""

import functools
import hashlib
import json
import sys
import time
from contextlib import contextmanager
from datetime import datetime
from enum import Enum


class TracerConfig:
    """Configuration for the tracer."""
    
    def __init__(self):
        self.enabled = False
        self.level = "INFO"
        self.file_path = None
        self.json_output = False
        self._file_handle = None
    
    def configure(self, enabled=False, level="INFO", file_path=None, json_output=False):
        """Configure tracer settings."""
        self.enabled = enabled
        self.level = level.upper()
        self.file_path = file_path
        self.json_output = json_output
        
        if self._file_handle:
            self._file_handle.close()
            self._file_handle = None
        
        if file_path and enabled:
            self._file_handle = open(file_path, "w", encoding="utf-8")
    
    def close(self):
        """Close file handle if open."""
        if self._file_handle:
            self._file_handle.close()
            self._file_handle = None


class Tracer:
    """
    Hierarchical tracer for structured run logging.
    
    Spans nest and report their duration; events attach to the innermost
    open span. Output goes to stderr, optionally mirrored to a file and
    to JSON lines.
    """
    
    LEVELS = {"ERROR": 0, "WARN": 1, "INFO": 2, "DEBUG": 3}
    
    def __init__(self):
        self.config = TracerConfig()
        self._depth = 0
        self._span_stack = []
    
    def _should_log(self, level):
        if not self.config.enabled:
            return False
        return self.LEVELS.get(level, 2) <= self.LEVELS.get(self.config.level, 2)
    
    def _format_timestamp(self):
        """Format current time as HH:MM:SS.mmm."""
        now = datetime.now()
        return now.strftime("%H:%M:%S.") + f"{now.microsecond // 1000:03d}"
    
    def _write(self, level, module, func, message, meta=None):
        if not self._should_log(level):
            return
        
        timestamp = self._format_timestamp()
        indent = "  " * self._depth
        location = f"{module}:{func}" if func else module
        
        text_line = f"{timestamp} {level:<5} {indent}{location}  {message}"
        
        print(text_line, file=sys.stderr)
        
        if self.config._file_handle:
            self.config._file_handle.write(text_line + "\n")
            self.config._file_handle.flush()
        
        if self.config.json_output:
            json_record = {
                "timestamp": timestamp,
                "level": level,
                "depth": self._depth,
                "module": module,
                "function": func,
                "message": message,
                "meta": {k: summarize(v) for k, v in (meta or {}).items()},
            }
            json_line = json.dumps(json_record)
            print(json_line, file=sys.stderr)
            if self.config._file_handle:
                self.config._file_handle.write(json_line + "\n")
    
    @contextmanager
    def span(self, name, module="", **meta):
        """
        Context manager for a traced span.
        
        Logs start and end with timing information. A failing body is
        logged at ERROR and the exception is re-raised.
        """
        if not self.config.enabled:
            yield
            return
        
        start_time = time.perf_counter()
        meta_str = " ".join(f"{k}={summarize(v)}" for k, v in meta.items())
        self._write("INFO", module, name, f"start {meta_str}".strip())
        self._depth += 1
        self._span_stack.append((name, module, start_time))
        
        error_occurred = False
        try:
            yield
        except Exception as e:
            error_occurred = True
            elapsed = (time.perf_counter() - start_time) * 1000
            self._depth -= 1
            self._span_stack.pop()
            self._write("ERROR", module, name, f"failed dt={elapsed:.0f}ms error={type(e).__name__}: {str(e)[:100]}")
            raise
        finally:
            if not error_occurred:
                elapsed = (time.perf_counter() - start_time) * 1000
                self._depth -= 1
                self._span_stack.pop()
                self._write("INFO", module, name, f"end ok dt={elapsed:.0f}ms")
    
    def event(self, message, level="INFO", **meta):
        """Log a one-off event within the current span."""
        if not self._should_log(level):
            return
        
        module = ""
        func = ""
        if self._span_stack:
            func, module, _ = self._span_stack[-1]
        
        meta_str = " ".join(f"{k}={summarize(v)}" for k, v in meta.items())
        full_message = f"{message} {meta_str}".strip()
        self._write(level, module, func, full_message, meta)


def summarize(obj, max_len=200):
    """
    Summarize an object for logging.
    
    Returns a compact string representation that never exceeds max_len chars.
    Handles numpy arrays, point clouds, pydantic models, strings, lists
    and dicts.
    """
    try:
        result = _summarize_impl(obj)
        if len(result) > max_len:
            return result[:max_len - 3] + "..."
        return result
    except Exception:
        return f"<{type(obj).__name__}>"


def _summarize_impl(obj):
    if obj is None:
        return "None"
    
    type_name = type(obj).__name__
    
    # numpy arrays
    try:
        import numpy as np
        if isinstance(obj, np.ndarray):
            shape_str = "x".join(str(s) for s in obj.shape)
            dtype_str = str(obj.dtype)
            if obj.size > 0 and obj.size < 1000:
                h = hashlib.md5(obj.tobytes()).hexdigest()[:8]
            else:
                h = hashlib.md5(str(obj.shape).encode()).hexdigest()[:8]
            return f"ndarray({dtype_str},{shape_str},h={h})"
    except ImportError:
        pass
    
    # point clouds
    from patchwork.cloud.point_cloud import PointCloud
    if isinstance(obj, PointCloud):
        return f"PointCloud(size={obj.size()})"
    
    # pydantic models
    from pydantic import BaseModel
    if isinstance(obj, BaseModel):
        fields = list(type(obj).model_fields.keys())[:3]
        return f"{type_name}(fields={fields}...)"
    
    if isinstance(obj, Enum):
        return str(obj.value)
    
    if isinstance(obj, str):
        if len(obj) > 50:
            h = hashlib.md5(obj.encode()).hexdigest()[:8]
            return f"str(len={len(obj)},h={h})"
        return repr(obj)
    
    if isinstance(obj, bytes):
        h = hashlib.md5(obj).hexdigest()[:8]
        return f"bytes(len={len(obj)},h={h})"
    
    if isinstance(obj, (list, tuple)):
        if len(obj) == 0:
            return f"{type_name}(len=0)"
        first_type = type(obj[0]).__name__
        return f"{type_name}(len={len(obj)},first={first_type})"
    
    if isinstance(obj, dict):
        keys = list(obj.keys())[:5]
        keys_str = ",".join(str(k) for k in keys)
        return f"dict(len={len(obj)},keys=[{keys_str}])"
    
    if isinstance(obj, (int, float)):
        return str(obj)
    
    return f"<{type_name}>"


def trace(label=None, arg_names=None):
    """
    Decorator to trace function execution.
    
    Wraps a function in a span that logs start/end with timing.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            if not _tracer.config.enabled:
                return func(*args, **kwargs)
            
            func_module = func.__module__.split(".")[-1] if func.__module__ else ""
            func_name = label or func.__name__
            
            meta = {}
            if arg_names:
                for name in arg_names:
                    if name in kwargs:
                        meta[name] = kwargs[name]
            
            with _tracer.span(func_name, module=func_module, **meta):
                return func(*args, **kwargs)
        
        return wrapper
    return decorator


# Global tracer instance
_tracer = Tracer()


def get_tracer():
    """Get the global tracer instance."""
    return _tracer


def configure_tracer(enabled=False, level="INFO", file_path=None, json_output=False):
    """Configure the global tracer."""
    _tracer.config.configure(
        enabled=enabled,
        level=level,
        file_path=file_path,
        json_output=json_output,
    )
