"""
Geocoding Module
--------------
Handles reverse geocoding operations to convert geographic coordinates to human-readable addresses.
Uses the Kakao Local REST API (coord2address) and maps its failures onto HTTP-friendly errors.
"""
