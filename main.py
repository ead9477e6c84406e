import argparse

from sessiontrack.config import HOST, PORT
from sessiontrack.api import run_server


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the SessionTrack server")
    parser.add_argument("--host", default=HOST)
    parser.add_argument("--port", type=int, default=PORT)
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development)")
    args = parser.parse_args()
    run_server(args.host, args.port, reload=args.reload)


if __name__ == "__main__":
    main()
