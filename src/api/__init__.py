"""HTTP layer of the validation daemon."""
