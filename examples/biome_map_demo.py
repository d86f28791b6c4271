"""
Example generating a biome map for a year and comparing the natural and
block-clustered layouts.
"""

import matplotlib.pyplot as plt
from py_biomap.core import BiomeMapEngine, GenerationRequest
from py_biomap.api.visualizer import render_rgb


def main():
    year = 2025
    engine = BiomeMapEngine()

    print(f"Generating biome map for {year}...")
    generated = engine.generate(GenerationRequest(year=year, seed=2025.0))

    print(f"Grid: {generated.grid.size} x {generated.grid.size} ({generated.grid.tile_count} tiles)")
    print(f"Blocks placed: {len(generated.blocks)}")
    print(f"Generation time: {generated.generation_time_seconds:.2f}s")

    print("\nBiome counts (target / actual):")
    for count in generated.report():
        share = 100.0 * count.actual / generated.grid.tile_count
        print(f"  {count.name:22s} {count.target:6d} / {count.actual:6d}  ({share:5.2f}%)")

    half = generated.grid.half_size
    extent = (-half - 0.5, half + 0.5, -half - 0.5, half + 0.5)

    fig, axes = plt.subplots(1, 2, figsize=(14, 7))

    ax = axes[0]
    ax.imshow(render_rgb(generated.tile_map), extent=extent, interpolation='nearest')
    ax.set_title('Natural clusters')
    ax.set_xlabel('x (east)')
    ax.set_ylabel('z (north)')

    ax = axes[1]
    ax.imshow(render_rgb(generated.final_map), extent=extent, interpolation='nearest')
    ax.set_title('Block clustered')
    ax.set_xlabel('x (east)')

    plt.tight_layout()
    plt.savefig('biome_map_demo.png', dpi=120)
    print("\nSaved visualization to biome_map_demo.png")


if __name__ == "__main__":
    main()
