"""Current-fix ownership.

This package is the single source of truth for "where the user is". Every
producer (sensor cascade, mobile proxy, manual override) hands its fix to
the store, which decides whether it may replace the current one.
"""
