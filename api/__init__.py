"""api/ -- FastAPI application object, lifespan, middleware, and JSON endpoints."""
