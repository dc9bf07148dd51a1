from .replacer import LAYER_ID, SOURCE_ID, RenderLayerReplacer, label_layer
from .surface import InMemoryMapSurface, MapSurface

__all__ = [
    "LAYER_ID",
    "SOURCE_ID",
    "InMemoryMapSurface",
    "MapSurface",
    "RenderLayerReplacer",
    "label_layer",
]
