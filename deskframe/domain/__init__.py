"""Domain layer: frame models, rasterizer, resampler, compiler and display state."""
