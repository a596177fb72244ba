"""HTTP API: shared dependencies and the root router (``stationtrack.api.router``)."""
