"""
Asset Store

Resolves where a backend's model/language files live on disk. Presence of
the expected file at the expected path is the only "already satisfied"
check; integrity is verified at download time when a checksum is declared.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class AssetSpec:
    """A file a backend needs before it can recognize text"""
    asset_id: str
    relative_path: str
    url: str
    sha256: Optional[str] = None

    @property
    def filename(self) -> str:
        return Path(self.relative_path).name


class AssetStore:
    """Per-backend asset directories under one root"""

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def backend_dir(self, dir_name: str) -> Path:
        return self.root / dir_name if dir_name else self.root

    def resolve(self, spec: AssetSpec, dir_name: str = "") -> Path:
        """Local path for spec, never touches the filesystem"""
        relative = Path(spec.relative_path)
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"asset path must stay inside the asset directory: {spec.relative_path}")
        return self.backend_dir(dir_name) / relative

    def resolve_all(self, specs: Iterable[AssetSpec], dir_name: str = "") -> List[Tuple[AssetSpec, Path]]:
        return [(spec, self.resolve(spec, dir_name)) for spec in specs]
