"""IP-geolocation providers: payload normalization and the provider race."""
