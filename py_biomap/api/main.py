"""FastAPI main application."""

from fastapi import FastAPI, HTTPException, Path
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
import structlog

from ..config import settings
from ..utils.logging_setup import configure_logging
from ..core.area_model import (
    area_breakdown,
    land_area_per_person,
    ocean_area_per_person,
    population_map_size,
    total_area_per_person,
    usable_area_per_person,
    world_population,
)
from ..core.engine import GeneratedMap, GenerationRequest
from .state import get_latest_or_404, session
from .visualizer import router as visualizer_router

configure_logging("DEBUG" if settings.debug else settings.log_level, settings.log_format)

logger = structlog.get_logger()

# Initialize FastAPI app
app = FastAPI(
    title="Biome Map API",
    description="Quota-constrained biome allocation for square tile worlds",
    version="0.1.0"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request/Response models
class MapGenerationRequest(BaseModel):
    """Request to regenerate the biome map."""

    year: int = Field(settings.default_year, ge=1, le=10000, description="Year driving world population")
    use_population_sizing: bool = Field(True, description="Derive the grid size from per-person area")
    map_size: Optional[int] = Field(None, ge=1, description="Explicit grid size (clamped and made odd)")
    seed: Optional[float] = Field(None, description="Terrain seed for reproducible generation")
    block_clustering: bool = Field(settings.block_clustering, description="Reorganize tiles into square blocks")
    water_fraction: float = Field(settings.water_fraction, ge=0.0, le=1.0,
                                  description="Share of tiles forced to water in population mode")


class BiomeCountResponse(BaseModel):
    """Target vs. actual tile count for one biome."""

    biome: str
    name: str
    target: int
    actual: int
    delta: int
    percentage: float


class MapSummary(BaseModel):
    """Summary information about the latest map."""

    year: int
    seed: float
    size: int
    tile_count: int
    population_sizing: bool
    block_clustering: bool
    blocks: int
    generation_time_seconds: float
    shortfall: Dict[str, int]


class TileInfo(BaseModel):
    """Biome and terrain data of one tile."""

    x: int
    z: int
    biome: str
    name: str
    is_water: bool
    natural_biome: str
    elevation: float


class AreaResponse(BaseModel):
    """Per-person area model for one year."""

    year: int
    population: int
    total_area_per_person: float
    ocean_area_per_person: float
    land_area_per_person: float
    usable_area_per_person: float
    map_size: int
    biome_area_per_person: Dict[str, float]


def _summary(generated: GeneratedMap) -> MapSummary:
    request = generated.request
    return MapSummary(
        year=request.year,
        seed=generated.seed,
        size=generated.grid.size,
        tile_count=generated.grid.tile_count,
        population_sizing=request.use_population_sizing,
        block_clustering=request.block_clustering,
        blocks=len(generated.blocks),
        generation_time_seconds=generated.generation_time_seconds,
        shortfall=generated.shortfall,
    )


# Event handlers
@app.on_event("startup")
async def startup_event():
    logger.info("Starting Biome Map API", host=settings.api_host, port=settings.api_port)


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down Biome Map API")


# API endpoints
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Biome Map API",
        "version": "0.1.0",
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "map_loaded": session.latest is not None,
        "regenerating": session.in_progress,
    }


@app.post("/maps/generate", response_model=MapSummary)
async def generate_map(request: MapGenerationRequest):
    """Regenerate the biome map. Rejected while another regeneration runs."""
    try:
        generated = await session.regenerate(GenerationRequest(**request.model_dump()))
    except ValueError as e:
        logger.warning("Rejected generation request", error=str(e))
        raise HTTPException(status_code=422, detail=str(e))

    if generated is None:
        raise HTTPException(status_code=409, detail="Regeneration already in progress")
    return _summary(generated)


@app.get("/maps/latest", response_model=MapSummary)
async def get_latest_map():
    """Get the summary of the last generated map."""
    return _summary(get_latest_or_404())


@app.get("/maps/latest/biomes", response_model=List[BiomeCountResponse])
async def get_latest_biomes():
    """Get target vs. actual counts per biome."""
    generated = get_latest_or_404()
    tile_count = generated.grid.tile_count
    return [
        BiomeCountResponse(
            biome=count.biome,
            name=count.name,
            target=count.target,
            actual=count.actual,
            delta=count.delta,
            percentage=round(100.0 * count.actual / tile_count, 3),
        )
        for count in generated.report()
    ]


@app.get("/maps/latest/tiles/{x}/{z}", response_model=TileInfo)
async def get_tile(x: int, z: int):
    """Get the biome of one tile."""
    generated = get_latest_or_404()
    if not generated.grid.contains(x, z):
        raise HTTPException(status_code=404, detail=f"Tile ({x}, {z}) is outside the map")

    biome_id = generated.final_map.biome_at(x, z)
    category = generated.final_map.table.get(biome_id)
    return TileInfo(
        x=x,
        z=z,
        biome=biome_id,
        name=category.name,
        is_water=category.is_water,
        natural_biome=generated.tile_map.biome_at(x, z),
        elevation=generated.elevation_at(x, z),
    )


@app.get("/area/{year}", response_model=AreaResponse)
async def get_area(year: int = Path(..., ge=1, le=10000)):
    """Get the per-person area model for a year."""
    return AreaResponse(
        year=year,
        population=world_population(year),
        total_area_per_person=total_area_per_person(year),
        ocean_area_per_person=ocean_area_per_person(year),
        land_area_per_person=land_area_per_person(year),
        usable_area_per_person=usable_area_per_person(year),
        map_size=population_map_size(year, settings.min_map_size, settings.max_map_size),
        biome_area_per_person=area_breakdown(year),
    )


app.include_router(visualizer_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
