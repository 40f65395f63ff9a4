"""Economies underlying the BLP model and problems defined on them."""
