import argparse
import asyncio
import importlib
import logging

from sipadapter import AdapterConfig, MessageError, Origin, UserAgentAdapter

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("example")


def load_engine(path):
    """Load a UserAgent implementation from 'package.module:ClassName'."""
    module_name, _, class_name = path.partition(':')
    return getattr(importlib.import_module(module_name), class_name)


async def main():
    parser = argparse.ArgumentParser(description="Answer every incoming SIP MESSAGE with an echo.")
    parser.add_argument("config", help="YAML adapter configuration")
    parser.add_argument("--engine", required=True, help="UserAgent class, e.g. mystack.ua:WebSocketUA")
    parser.add_argument("--greet", help="SIP URI to send a greeting to once registered")
    args = parser.parse_args()

    config = AdapterConfig.from_yaml(args.config, logger=logger)
    adapter = UserAgentAdapter(config, load_engine(args.engine))

    adapter.delegate.on_connecting(lambda *args: print("[SIP] Connecting"))
    adapter.delegate.on_registration_fail(lambda event=None: print(f"[SIP] Registration failed: {event}"))

    async def on_message(message):
        request = message.request
        if request.origin is not Origin.REMOTE:
            return
        print(f"[MSG] {request.from_.display_name or request.from_.uri}: {request.body}")
        await message.accept()
        try:
            await adapter.message(str(request.from_.uri), f"echo: {request.body}")
        except MessageError as e:
            print(f"[MSG] Echo failed: {e.status_code} {e.reason}")

    adapter.delegate.on_new_message(on_message)

    try:
        await asyncio.wait_for(adapter.start(strict=True), timeout=30)
        print("[SIP] Registered")
        if args.greet:
            await adapter.message(args.greet, "Hello!")
        while True:
            await asyncio.sleep(1)
    except KeyboardInterrupt:
        print("Stopping...")
    finally:
        await asyncio.wait_for(adapter.stop(), timeout=10)

if __name__ == "__main__":
    asyncio.run(main())
