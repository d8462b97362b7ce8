"""Image decoding, encoding and working-copy normalization."""
