from __future__ import annotations

import logging
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

log = logging.getLogger("clipcut.resources")


@dataclass
class ObjectUrl:
    """
    Revocable handle exposing byte content as a playable/downloadable URL.

    Notes:
        - `owned=True` means the registry created the backing file and deletes
          it on revoke. Preview URLs point at the user's file and are not owned.
        - The url is a local path, which is what Flet's Image/Video controls load.
    """

    id: str
    path: str
    owned: bool
    revoked: bool = False

    @property
    def url(self) -> str:
        return self.path

    def save_as(self, dest: str) -> str:
        if self.revoked:
            raise ValueError("Resource has been revoked")
        out = Path(dest)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(Path(self.path).read_bytes())
        return str(out)


class ObjectUrlRegistry:
    """Creates and revokes object URLs. Owned content lives under `root_dir`."""

    def __init__(self, root_dir: Optional[Path] = None) -> None:
        self.root_dir = Path(root_dir) if root_dir else Path(tempfile.gettempdir()) / "clipcut-objects"

    def create_for_path(self, path: str) -> ObjectUrl:
        return ObjectUrl(id=uuid.uuid4().hex, path=str(path), owned=False)

    def create_from_bytes(self, data: bytes, suffix: str = ".bin") -> ObjectUrl:
        self.root_dir.mkdir(parents=True, exist_ok=True)
        oid = uuid.uuid4().hex
        p = self.root_dir / f"{oid}{suffix}"
        p.write_bytes(bytes(data))
        return ObjectUrl(id=oid, path=str(p), owned=True)

    def revoke(self, ou: Optional[ObjectUrl]) -> None:
        if ou is None or ou.revoked:
            return
        ou.revoked = True
        if ou.owned:
            try:
                Path(ou.path).unlink(missing_ok=True)
            except OSError as ex:
                log.warning("could not delete %s: %s", ou.path, ex)

    def revoke_all(self, items: List[ObjectUrl]) -> None:
        for ou in items:
            self.revoke(ou)
