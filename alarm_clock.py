import logging
import signal

import uvicorn

from alarm_server import create_app
from alarms.intent_router import IntentRouter
from alarms.manager import AlarmManager
from alarms.models import Alarm
from config import Config, load_config, setup_logging

logger = logging.getLogger("alarm_clock")


def graceful_exit(signum, frame) -> None:  # pragma: no cover - signal handler
    logger.info("Shutting down (signal %s)", signum)
    raise KeyboardInterrupt()


def _on_alarm_fired(alarm: Alarm) -> None:
    print(f"\nALARM! {alarm.label}", flush=True)


def run_cli(config: Config, manager: AlarmManager) -> None:
    router = IntentRouter(manager, default_label=config.default_label)
    print("Alarm clock ready. Type 'help' for commands, Ctrl+C to quit.")
    while True:
        try:
            text = input("> ")
        except EOFError:
            break
        if not text.strip():
            continue
        result = router.handle_text(text)
        if result.response_text:
            print(result.response_text)


def run_http(config: Config, manager: AlarmManager) -> None:
    app = create_app(manager)
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())


def main() -> None:
    config = load_config()
    setup_logging(config.log_level, config.log_dir)
    signal.signal(signal.SIGINT, graceful_exit)
    logger.info("Starting alarm clock (interface=%s)", config.interface)

    on_fired = _on_alarm_fired if config.interface == "cli" else None
    manager = AlarmManager(check_interval=config.check_interval, on_alarm_fired=on_fired)
    manager.start()
    try:
        if config.interface == "cli":
            run_cli(config, manager)
        else:
            run_http(config, manager)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        manager.shutdown()


if __name__ == "__main__":
    main()
