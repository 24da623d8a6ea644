import logging
import os
import subprocess
import sys
from pathlib import Path


def main():
    project_root = Path(__file__).parent.parent
    os.chdir(project_root)

    # Ensure src is in python path
    env = os.environ.copy()
    src_path = str(project_root / "src")
    if "PYTHONPATH" in env:
        env["PYTHONPATH"] = f"{src_path}{os.pathsep}{env['PYTHONPATH']}"
    else:
        env["PYTHONPATH"] = src_path

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    log = logging.getLogger("run_api")
    port = env.get("CAP_PRICING_PORT", "8000")

    log.info("Starting Cap Pricing API (FastAPI) on port %s...", port)
    try:
        subprocess.run([
            sys.executable, "-m", "uvicorn",
            "cap_pricing.api.main:app",
            "--host", "0.0.0.0",
            "--port", port,
            "--reload"
        ], env=env)
    except KeyboardInterrupt:
        log.info("API stopped.")


if __name__ == "__main__":
    main()
