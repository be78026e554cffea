"""Backend connectors, one per service kind."""
