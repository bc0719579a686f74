"""Simple entrypoint to run the Armario service locally."""

import argparse

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the Armario HTTP service.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8080)
    args = parser.parse_args()
    uvicorn.run("server.api:get_app", factory=True, host=args.host, port=args.port, reload=False)


if __name__ == "__main__":
    main()
