import subprocess
import sys
import time
import signal
import psutil
import requests
import logging
from cryptoagent.config.settings import BACKEND_URL, DISCORD_BOT_TOKEN, LOG_LEVEL

# Set up logging
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

BACKEND_STARTUP_TIMEOUT = 30.0


def start_backend() -> subprocess.Popen:
    """Start uvicorn serving cryptoagent.backend in a child process"""
    logger.info("Starting backend...")
    return subprocess.Popen([sys.executable, "-m", "uvicorn", "cryptoagent.backend:app"])


def wait_for_backend(url: str = BACKEND_URL, timeout: float = BACKEND_STARTUP_TIMEOUT,
                     interval: float = 0.5) -> bool:
    """Poll the backend's /health endpoint until it answers or ``timeout`` runs out"""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        try:
            if requests.get(f"{url}/health", timeout=interval).status_code == 200:
                logger.info(f"Backend is up at {url}")
                return True
        except requests.RequestException:
            pass
        time.sleep(interval)
    logger.error(f"Backend did not answer at {url} within {timeout}s")
    return False


def stop_process_tree(pid: int) -> None:
    """Terminate ``pid`` and everything it spawned"""
    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return
    processes = parent.children(recursive=True) + [parent]
    for process in processes:
        try:
            process.terminate()
        except psutil.NoSuchProcess:
            pass
    _, alive = psutil.wait_procs(processes, timeout=5)
    for process in alive:
        process.kill()


def main() -> int:
    backend = start_backend()
    signal.signal(signal.SIGTERM, lambda s, f: sys.exit(0))
    try:
        if not wait_for_backend():
            return 1
        if DISCORD_BOT_TOKEN:
            from cryptoagent.discord_bot import bot

            logger.info("Starting Discord bot...")
            bot.run(DISCORD_BOT_TOKEN)
        else:
            logger.info("DISCORD_BOT_TOKEN not set, serving the backend only")
            backend.wait()
        return 0
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        return 0
    finally:
        stop_process_tree(backend.pid)


if __name__ == "__main__":
    sys.exit(main())
