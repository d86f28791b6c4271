"""
Map rendering endpoints.

The rendering layer is a consumer of the finished map: it reads one biome per
tile and draws it in the biome's color. North (+z) is up, east (+x) is right.
"""

from io import BytesIO

import numpy as np
import structlog
from fastapi import APIRouter, Query
from fastapi.responses import Response
from matplotlib import colors as mcolors
from matplotlib import image as mpimg

from ..core.tile_assigner import UNASSIGNED, TileAssignmentMap
from .state import get_latest_or_404

logger = structlog.get_logger()

router = APIRouter(prefix="/maps/latest", tags=["Rendering"])

UNASSIGNED_COLOR = (0.0, 0.0, 0.0)


def render_rgb(tile_map: TileAssignmentMap) -> np.ndarray:
    """
    Draw a tile map as an RGB image.

    Args:
        tile_map: Map to render

    Returns:
        Float array of shape (size, size, 3) in [0, 1], row 0 is the northern edge
    """
    palette = np.array(
        [mcolors.to_rgb(category.color) for category in tile_map.table] + [UNASSIGNED_COLOR],
        dtype=np.float64,
    )
    codes = np.where(tile_map.codes == UNASSIGNED, len(tile_map.table), tile_map.codes)
    # codes are indexed [x, z]; image rows run north to south
    image_codes = np.flipud(codes.T)
    return palette[image_codes]


@router.get("/preview.png")
async def get_preview(natural: bool = Query(False, description="Render the map before block clustering"),
                      scale: int = Query(1, ge=1, le=8, description="Pixels per tile")):
    """Render the latest map as a PNG image."""
    generated = get_latest_or_404()
    tile_map = generated.tile_map if natural else generated.final_map

    rgb = render_rgb(tile_map)
    if scale > 1:
        rgb = np.repeat(np.repeat(rgb, scale, axis=0), scale, axis=1)

    buffer = BytesIO()
    mpimg.imsave(buffer, rgb, format="png")
    logger.debug("Rendered map preview", size=generated.grid.size, scale=scale, natural=natural)
    return Response(content=buffer.getvalue(), media_type="image/png")
