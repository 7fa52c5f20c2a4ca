"""
File Template Store
====================

Templates live on disk as `<root>/<kind>/<name>`, e.g.
`templates/email/sla_breach.html`.
"""

import asyncio
from pathlib import Path
from typing import Optional

from slawatch.config import VALID_NOTIFICATION_KINDS, settings
from slawatch.core import TemplateNotFoundException
from slawatch.notifications.application import ITemplateStore


class FileTemplateStore(ITemplateStore):
    """Read-only template store backed by a directory tree."""

    def __init__(self, root: Optional[Path] = None):
        self._root = Path(root or settings.templates_dir)

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, kind: str, name: str) -> Path:
        if kind not in VALID_NOTIFICATION_KINDS or not name:
            raise TemplateNotFoundException(kind, name)

        kind_dir = (self._root / kind).resolve()
        path = (kind_dir / name).resolve()

        # Names like "../teams/x" must not escape the kind directory
        if not path.is_relative_to(kind_dir) or not path.is_file():
            raise TemplateNotFoundException(kind, name)
        return path

    async def load(self, kind: str, name: str) -> str:
        path = self._resolve(kind, name)
        try:
            return await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError:
            raise TemplateNotFoundException(kind, name)
