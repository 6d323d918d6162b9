"""Core module - executor, geolocation resolver, models and interfaces."""
