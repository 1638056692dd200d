"""
Web Module
--------
Client-side pieces of the lookup tool: the map widget, the page controller that wires
it to the API, and the HTML page served at the site root.
"""
