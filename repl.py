"""Interactive REPL for Voice Hints. Reads commands from stdin and drives a live page.

Stands in for the speech recognizer and options page: ``say`` feeds final
transcripts, ``hear`` feeds interim ones, ``set`` changes settings.
"""
import asyncio, json, logging, os, sys, traceback

from voicehints.browser.session import HintSession, SessionConfig
from voicehints.core.engine import SpeechError, SpeechErrorCode, SpeechEvent
from voicehints.core.metrics import StoreMetricsSink
from voicehints.core.store import HintStore

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "INFO")),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stderr)],
)

STORE_PATH = os.getenv("VOICEHINTS_DB", "/tmp/voicehints/store.db")


def _parse_value(raw):
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def _print_execution(session, update):
    if update.action is not None and session.last_execution is not None:
        print(f"EXECUTION: {json.dumps(session.last_execution.to_dict())}", flush=True)


async def main():
    store = HintStore(db_path=STORE_PATH)
    session = HintSession(SessionConfig(headless=False), store=store, metrics_sink=StoreMetricsSink(store))
    await session.start(sys.argv[1] if len(sys.argv) > 1 else None)
    stop = asyncio.Event()
    ticker = asyncio.create_task(session.run(stop))
    print("[READY] Voice Hints attached; move the mouse in the browser window", flush=True)

    while True:
        print("CMD>", flush=True)
        try:
            line = await asyncio.get_event_loop().run_in_executor(None, sys.stdin.readline)
            if not line:
                break
            cmd = line.strip()
            if not cmd:
                continue
            if cmd == "quit":
                break

            parts = cmd.split(" ", 1)
            action = parts[0]
            args = parts[1] if len(parts) > 1 else ""
            engine = session.engine

            if action == "open":
                await session.navigate(args)
                print(f"RESULT: opened {args}", flush=True)

            elif action == "state":
                motion = engine.tracker.state()
                print(f"STATE_MOVING: {motion.is_moving} speed={motion.speed:.1f}", flush=True)
                print(f"STATE_SELECTION: {engine.controller.state.value}", flush=True)
                for ordinal, c in enumerate(engine.ranked_set.candidates, start=1):
                    print(f"  HINT[{ordinal}] {json.dumps(c.to_dict())}", flush=True)
                if session.last_execution is not None:
                    print(f"STATE_LAST_EXECUTION: {json.dumps(session.last_execution.to_dict())}", flush=True)
                print("STATE_END", flush=True)

            elif action == "key":
                update = await session.key(args)
                print(f"RESULT: {update.outcome.kind.value if update.outcome else 'ignored'}", flush=True)
                _print_execution(session, update)

            elif action == "select":
                update = await session.badge_click(int(args))
                print(f"RESULT: {update.outcome.kind.value if update.outcome else 'ignored'}", flush=True)
                _print_execution(session, update)

            elif action in ("say", "hear"):
                update = await session.speech(SpeechEvent(transcript=args, is_final=(action == "say")))
                for status in update.statuses:
                    print(f"STATUS: {status.text}", flush=True)
                _print_execution(session, update)

            elif action == "mic-denied":
                await session.speech_error(SpeechError(SpeechErrorCode.PERMISSION_DENIED, args))
                print("RESULT: voice disabled, keyboard only", flush=True)

            elif action == "set":
                # set topK=4,coneAngle=60
                changes = dict(p.split("=", 1) for p in args.split(","))
                parsed = {k.strip(): _parse_value(v.strip()) for k, v in changes.items()}
                await session.apply_settings(engine.settings.updated(parsed))
                print(f"RESULT: {json.dumps(engine.settings.to_dict())}", flush=True)

            elif action == "weights":
                print(f"WEIGHTS: {json.dumps(engine.ranker.weights.to_dict())}", flush=True)

            elif action == "reset-weights":
                await session.reset_weights()
                print(f"WEIGHTS: {json.dumps(engine.ranker.weights.to_dict())}", flush=True)

            elif action in ("enable", "disable"):
                await session.set_enabled(action == "enable")
                print(f"RESULT: enabled={engine.enabled}", flush=True)

            elif action == "metrics":
                print(f"METRICS: {json.dumps(engine.metrics.snapshot())}", flush=True)

            else:
                print(f"ERROR: unknown command: {action}", flush=True)

        except Exception as e:
            traceback.print_exc()
            print(f"ERROR: {e}", flush=True)

    stop.set()
    await ticker
    await session.close()
    print("[DONE]", flush=True)

asyncio.run(main())
