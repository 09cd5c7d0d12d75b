"""USD price list and reference token rate proxy."""
