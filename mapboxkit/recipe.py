"""Tileset recipes: which sources feed which layers at which zooms."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass
class RecipeLayer:
    """One layer of a recipe."""

    source: str = ""
    min_zoom: int = 0
    max_zoom: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"source": self.source, "minzoom": self.min_zoom, "maxzoom": self.max_zoom}


@dataclass
class Recipe:
    """A versioned set of named layers."""

    version: int = 0
    layers: dict[str, RecipeLayer] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "layers": {name: layer.to_dict() for name, layer in self.layers.items()},
        }


def _zoom(value: Any) -> int:
    zoom = int(value or 0)
    if zoom < 0:
        raise ValueError("zoom levels must not be negative")
    return zoom


def load_recipe(data: str | bytes | dict[str, Any]) -> Recipe:
    """Build a recipe from its JSON text or decoded document."""
    document = json.loads(data) if isinstance(data, (str, bytes)) else data
    if not isinstance(document, dict):
        raise ValueError("recipe must be a JSON object")
    layers = {
        name: RecipeLayer(
            source=item.get("source", "") or "",
            min_zoom=_zoom(item.get("minzoom")),
            max_zoom=_zoom(item.get("maxzoom")),
        )
        for name, item in (document.get("layers") or {}).items()
    }
    return Recipe(version=int(document.get("version", 0) or 0), layers=layers)