import os, sys, time, signal
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))
from iot_thermostat.exceptions import ConfigError
from iot_thermostat.logging_config import resolve_logging_from_env_and_cfg, setup_logging
from iot_thermostat.runtime import load_config, build_runtime

RUN = True
def handle_sig(sig, frame):
    global RUN; RUN = False

def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    try:
        cfg = load_config(argv[0] if argv else None)
        setup_logging(*resolve_logging_from_env_and_cfg(cfg))
        rt = build_runtime(cfg)
    except ConfigError as exc:
        print(f"[APP] Configuration error: {exc}", file=sys.stderr)
        return 2
    signal.signal(signal.SIGINT, handle_sig); signal.signal(signal.SIGTERM, handle_sig)
    print("[APP] Starting thermostat. Ctrl+C to exit.")
    try:
        rt.start()
        while RUN:
            time.sleep(0.5)
    finally:
        print("[APP] Shutting down, LEDs safe-off.")
        rt.stop()
    return 0

if __name__ == "__main__":
    sys.exit(main())
