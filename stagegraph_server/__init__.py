"""HTTP service storing pipeline descriptors and serving graph queries."""
