"""Structured logging for the environments panel.

Event-style messages with keyword fields: JSON lines when stdout is not a
TTY (hosted), coloured key=value text on a TTY (local dev).
"""
import json
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

LEVELS = {'DEBUG': 0, 'INFO': 1, 'WARN': 2, 'ERROR': 3}

_COLORS = {
    'DEBUG': '\033[36m',
    'INFO': '\033[32m',
    'WARN': '\033[33m',
    'ERROR': '\033[31m',
}

# Field names whose values never reach the log output in clear text
_SECRET_FIELDS = ('token', 'api_token', 'password', 'authorization', 'auth')


def _mask(value: Any) -> str:
    s = str(value or '')
    if len(s) < 8:
        return '***'
    return s[:4] + '…' + s[-4:]


class StructuredLogger:
    """Logger bound to one component name (gateway, store, app...)."""

    def __init__(self, name: str = 'envpanel', level: Optional[str] = None,
                 parent: Optional['StructuredLogger'] = None):
        self.name = name
        self._parent = parent
        self._level = level.upper() if level else None
        if parent is None and self._level is None:
            self._level = os.getenv('LOG_LEVEL', 'INFO').upper()
        self._is_tty = sys.stdout.isatty()

    @property
    def level(self) -> str:
        if self._level is None and self._parent is not None:
            return self._parent.level
        return self._level or 'INFO'

    def child(self, name: str) -> 'StructuredLogger':
        """Logger for a component; follows this logger's level."""
        return StructuredLogger(f"{self.name}.{name}", parent=self)

    def set_level(self, level: str) -> None:
        self._level = (level or 'INFO').upper()

    def _should_log(self, level: str) -> bool:
        return LEVELS.get(level, 1) >= LEVELS.get(self.level, 1)

    def _fields(self, kwargs: Dict[str, Any]) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for k, v in kwargs.items():
            out[k] = _mask(v) if k.lower() in _SECRET_FIELDS else v
        return out

    def _log(self, level: str, message: str, **kwargs) -> None:
        if not self._should_log(level):
            return

        fields = self._fields(kwargs)
        stream = sys.stderr if level in ('WARN', 'ERROR') else sys.stdout

        if self._is_tty:
            parts = [f"{_COLORS.get(level, '')}[{level}]\033[0m {self.name}: {message}"]
            kv = []
            for k, v in fields.items():
                if isinstance(v, (dict, list)):
                    v = json.dumps(v, default=str)[:100]
                kv.append(f"{k}={v}")
            if kv:
                parts.append("| " + " ".join(kv))
            print(" ".join(parts), file=stream)
        else:
            entry = {
                'ts': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
                'level': level,
                'logger': self.name,
                'msg': message,
                **fields,
            }
            print(json.dumps(entry, default=str), file=stream)

    def debug(self, message: str, **kwargs) -> None:
        self._log('DEBUG', message, **kwargs)

    def info(self, message: str, **kwargs) -> None:
        self._log('INFO', message, **kwargs)

    def warn(self, message: str, **kwargs) -> None:
        self._log('WARN', message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        self._log('ERROR', message, **kwargs)

    def exception(self, message: str, exc: BaseException, **kwargs) -> None:
        """Log an ERROR carrying the exception class and text."""
        self._log('ERROR', message, error=str(exc), error_type=exc.__class__.__name__, **kwargs)


logger = StructuredLogger()
