"""
Tile Server — HTTP front end for the tile engine

- Serves /{zoom}/{col}/{row}.{jpg|jpeg|webp} (EPSG:3857 XYZ grid) from one raster
- Query options: background|bg=RRGGBB, quality|q=0..100, size=<px>
- /health reports the raster path and worker pool stats

Run:
    python -m tile_server --raster-file data/raster/world_3857.tif
"""
