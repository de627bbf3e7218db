import logging
import os

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("entrypoint")


def main() -> None:
  """Launch the panel under uvicorn."""
  port = os.getenv("PORT", "3000")
  logger.info("Starting license panel on port %s...", port)
  # Use os.execvp to replace the current process with uvicorn.
  # This ensures signals (SIGTERM, etc.) are handled correctly by uvicorn.
  args = ["uvicorn", "license_panel.main:app", "--host", "0.0.0.0", "--port", port, "--no-server-header"]
  os.execvp("uvicorn", args)


if __name__ == "__main__":
  main()
