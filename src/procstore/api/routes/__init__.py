"""Storage API routers."""
