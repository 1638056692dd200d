"""
Main entrypoint for the location lookup service.

Usage:
    python main.py                 # serve the API and map page
    python main.py lookup 37.5665 126.978
    python main.py static-map 37.5665 126.978 --out map.svg
"""
import argparse
import sys

from src.config.settings import HOST, PORT


def serve(host, port):
    import uvicorn
    from src.api.app import app

    print(f"Serving on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port)
    return 0


def lookup(lat, lng, base_url):
    from src.web.page_controller import LocationApiClient, ApiError

    client = LocationApiClient(base_url=base_url)
    try:
        data = client.coordinate_to_address(lat, lng)
    except ApiError as e:
        print(f"Lookup failed ({e.status_code}): {e.message}")
        return 1
    print(data["address"])
    print(f"  Usage today: {data['usageCount']}")
    return 0


def save_static_map(lat, lng, base_url, out_path):
    from src.web.page_controller import LocationApiClient, ApiError

    client = LocationApiClient(base_url=base_url)
    try:
        svg = client.static_map(lat, lng)
    except ApiError as e:
        print(f"Static map failed ({e.status_code}): {e.message}")
        return 1
    with open(out_path, "wb") as f:
        f.write(svg)
    print(f"Saved map image to {out_path}")
    return 0


def main(argv=None):
    """
    Main function: parse the command line and dispatch.
    """
    parser = argparse.ArgumentParser(description="Coordinate to address lookup service")
    sub = parser.add_subparsers(dest="command")

    serve_parser = sub.add_parser("serve", help="run the HTTP server (default)")
    serve_parser.add_argument("--host", default=HOST)
    serve_parser.add_argument("--port", type=int, default=PORT)

    lookup_parser = sub.add_parser("lookup", help="resolve one coordinate through a running server")
    lookup_parser.add_argument("lat", type=float)
    lookup_parser.add_argument("lng", type=float)
    lookup_parser.add_argument("--url", default=f"http://localhost:{PORT}")

    map_parser = sub.add_parser("static-map", help="save the placeholder map image for a coordinate")
    map_parser.add_argument("lat", type=float)
    map_parser.add_argument("lng", type=float)
    map_parser.add_argument("--out", default="map.svg")
    map_parser.add_argument("--url", default=f"http://localhost:{PORT}")

    args = parser.parse_args(argv)
    try:
        if args.command == "lookup":
            return lookup(args.lat, args.lng, args.url)
        if args.command == "static-map":
            return save_static_map(args.lat, args.lng, args.url, args.out)
        host = getattr(args, "host", HOST)
        port = getattr(args, "port", PORT)
        return serve(host, port)
    except Exception as e:
        print(f"An error occurred in the main function: {str(e)}")
        return 1


if __name__ == "__main__":
    exit_code = main()
    sys.exit(exit_code)
