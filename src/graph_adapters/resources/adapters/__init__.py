"""Default adapter metadata catalogues."""
