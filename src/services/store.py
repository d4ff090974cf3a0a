"""Saved recipes, persisted as one JSON document keyed by recipe id.

The document lives at <storage_dir>/recipe-storage.json. Recipes are stored
in their schema.org wire form and revalidated on read. Every write replaces
the whole file through a temp file so a crash never leaves half a document.
"""

import json
import os
import tempfile
import uuid
from pathlib import Path
from typing import Optional

from src.models.models import Recipe
from src.utils.logger import logger


STORAGE_NAMESPACE = "recipe-storage"


class RecipeStore:
    """Durable keyed collection of saved recipes."""

    def __init__(self, storage_dir: str) -> None:
        self.path = Path(storage_dir) / f"{STORAGE_NAMESPACE}.json"

    def _load(self) -> dict[str, dict]:
        if not self.path.exists():
            return {}
        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Corrupt recipe storage at {self.path}: expected an object")
        return data

    def _write(self, data: dict[str, dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{STORAGE_NAMESPACE}-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def save(self, recipe: Recipe) -> Recipe:
        """Insert or replace `recipe`, assigning an id when it has none.

        Returns:
            The stored copy (with its id).
        """
        if not recipe.id:
            recipe = recipe.with_id(uuid.uuid4().hex)
        data = self._load()
        data[recipe.id] = recipe.to_json_dict()
        self._write(data)
        logger.info(f"Saved recipe {recipe.id}: {recipe.name}")
        return recipe

    def remove(self, recipe_id: str) -> bool:
        """Delete a saved recipe. Returns False when it was not stored."""
        data = self._load()
        if recipe_id not in data:
            return False
        del data[recipe_id]
        self._write(data)
        logger.info(f"Removed recipe {recipe_id}")
        return True

    def contains(self, recipe_id: str) -> bool:
        return recipe_id in self._load()

    def get(self, recipe_id: str) -> Optional[Recipe]:
        stored = self._load().get(recipe_id)
        return Recipe.model_validate(stored) if stored is not None else None

    def list(self) -> list[Recipe]:
        """All saved recipes in insertion order."""
        return [Recipe.model_validate(stored) for stored in self._load().values()]
