"""Annotation-to-mask pipeline.

Modules:
- `points`: CVAT point-list parsing
- `geometry`: shape variants and their rasterization
- `image`: per-image mask aggregation
- `document`: CVAT XML loading
- `orchestrator`: concurrent batch mask generation
- `utils`: file IO helpers (`io`, `masks`)
"""
