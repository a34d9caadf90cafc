from __future__ import annotations
from pathlib import Path

from core.logger import AppLogger
from model.patch import Patch


class Library:
    """A directory of single-voice .syx files."""

    def __init__(self, root: Path, logger: AppLogger | None = None) -> None:
        self.root = Path(root)
        self._logger = logger
        self.root.mkdir(parents=True, exist_ok=True)

    def _unique_path(self, slug: str) -> Path:
        path = self.root / f"{slug}.syx"
        counter = 1
        while path.exists():
            path = self.root / f"{slug}-{counter}.syx"
            counter += 1
        return path

    def save_patch(self, patch: Patch) -> Path:
        path = self._unique_path(patch.slug)
        patch.save(path)
        if self._logger is not None:
            self._logger.general(f"saved voice '{patch.name}' to {path.name}")
        return path

    def list_patches(self) -> list[Patch]:
        result = []
        for f in sorted(self.root.glob("*.syx")):
            try:
                result.append(Patch.load(f))
            except (ValueError, OSError) as exc:
                if self._logger is not None:
                    self._logger.general(f"skipped {f.name}: {exc}")
        return result

    def delete_patch(self, path: Path) -> None:
        if path.exists():
            path.unlink()
