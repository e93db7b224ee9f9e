"""Infrastructure layer - telemetry, middleware, downstream client, interceptors."""
