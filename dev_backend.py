from pathlib import Path
import argparse
import os
import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the dashboard proxy for local development")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--mock", action="store_true", help="Serve mock data when the backend is unavailable")
    parser.add_argument("--no-reload", action="store_true")
    args = parser.parse_args()

    root = Path(__file__).resolve().parent
    # Reload workers need the project root on PYTHONPATH
    existing = os.environ.get("PYTHONPATH", "")
    if str(root) not in existing.split(os.pathsep):
        os.environ["PYTHONPATH"] = (existing + (os.pathsep if existing else "") + str(root))
    os.environ.setdefault("DASHBOARD_ROOT", str(root))
    if args.mock:
        os.environ["DASHBOARD_USE_MOCK_DATA"] = "true"

    uvicorn.run(
        "backend.main:app",
        host=args.host,
        port=args.port,
        reload=not args.no_reload,
        app_dir=str(root),
        reload_dirs=[str(root / "backend"), str(root / "src")],
        log_level="info",
    )


if __name__ == "__main__":
    main()
