"""
API Module
---------
Provides the HTTP endpoints for the location lookup tool using FastAPI.
Features include:
- Coordinate to address conversion through the Kakao Local API
- Per-IP daily usage reporting and limiting
- A placeholder static map image
- The browser map page
"""
