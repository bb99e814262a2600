"""Run the bridge with uvicorn: ``python -m responses_bridge``."""

import uvicorn

from .config_loader import load_config
from .main import create_app
from .settings import BridgeSettings


def main() -> None:
    config = load_config()
    settings = BridgeSettings.from_config(config)
    app = create_app(config)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="info")


if __name__ == "__main__":
    main()
