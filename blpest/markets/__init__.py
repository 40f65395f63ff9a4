"""Markets underlying the BLP model."""
