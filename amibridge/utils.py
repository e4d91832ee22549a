"""
Utility functions for the amibridge library
"""
import asyncio
import signal
import sys
from typing import Callable, Any, Optional


def run_with_keyboard_interrupt(main_func: Callable[[], Any]) -> None:
    """
    Run an async main function with graceful KeyboardInterrupt handling.
    
    This function wraps asyncio.run() to catch KeyboardInterrupt (Ctrl+C) and
    provide a clean shutdown experience.
    
    Args:
        main_func: The async main function to run
    """
    try:
        asyncio.run(main_func())
    except KeyboardInterrupt:
        print("\n🛑 Interrupted by user (Ctrl+C)")
        print("Shutting down gracefully...")
        sys.exit(0)
    except Exception as e:
        print(f"❌ Error: {e}")
        sys.exit(1)


def install_stop_signals(stop: Callable[[], None], loop: Optional[asyncio.AbstractEventLoop] = None) -> list[int]:
    """
    Map SIGINT and SIGTERM to a stop request.
    
    The handlers run on the event loop, so `stop` may touch loop-bound state
    such as an asyncio.Event. Returns the signals that were installed; on
    platforms without loop signal support nothing is installed.
    
    Args:
        stop: Called once per received signal
        loop: Event loop to install on (defaults to the running loop)
    """
    loop = loop or asyncio.get_running_loop()
    installed = []
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop)
        except (NotImplementedError, RuntimeError):
            continue
        installed.append(signum)
    return installed
