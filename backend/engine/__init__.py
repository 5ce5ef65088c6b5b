"""
Map rendering surfaces.

A surface is the engine the map session drives (sources, layers, feature queries,
camera). Today we ship a headless in-memory surface; a browser-backed MapLibre bridge
would implement the same `MapSurface` protocol.
"""
