"""Internal constants shared across the library."""

USER_AGENT = "pylocator/1 (+https://github.com/pylocator)"

# W3C Geolocation API error codes.
GEO_PERMISSION_DENIED = 1
GEO_POSITION_UNAVAILABLE = 2
GEO_TIMEOUT = 3

LOOPBACK_HOSTS: frozenset[str] = frozenset({"localhost", "127.0.0.1", "::1", "[::1]"})

# Used when a provider answers with an address only.
FALLBACK_LOOKUP_URL = "https://ipapi.co/{ip}/json/"

MOBILE_PROXY_URL = "http://localhost:5000/api/location/mobile-gps"

# ------------------------------------------------------------------
# Default IP-geolocation providers  (name, url, timeout seconds)
# ------------------------------------------------------------------

DEFAULT_PROVIDERS: tuple[tuple[str, str, float], ...] = (
    ("ipapi", "https://ipapi.co/json/", 4.0),
    ("ipwhois", "https://ipwho.is/", 4.0),
    ("ip-api", "http://ip-api.com/json/?fields=status,message,lat,lon,isp,org,mobile,query", 3.0),
    ("ipinfo", "https://ipinfo.io/json", 4.0),
    ("freeipapi", "https://freeipapi.com/api/json", 5.0),
    ("ipify", "https://api.ipify.org?format=json", 3.0),
)

# Organization/connection keywords used to guess the connection class of an
# IP block when a provider reports no explicit accuracy.
MOBILE_KEYWORDS: tuple[str, ...] = ("mobile", "cellular", "wireless", "lte", "5g", "gsm")
ISP_KEYWORDS: tuple[str, ...] = ("isp", "broadband", "cable", "dsl", "fiber", "fibre", "telecom", "internet")
