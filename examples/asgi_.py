# /// script
# requires-python = ">=3.9"
# dependencies = [
#     "pahest",
#     "httpx",
#     "yaspin",
# ]
#
# [tool.uv.sources]
# pahest = { path = "../", editable = true }
# ///


import asyncio
import time
from datetime import datetime, timezone
from email.utils import formatdate

import httpx
import yaspin

from pahest import AsyncInMemoryStorage, CachePolicy
from pahest.asgi import ASGICacheMiddleware

processed_requests = 0


async def app(scope, receive, send):
    global processed_requests
    if scope["type"] != "http":
        return

    processed_requests += 1
    headers = [(b"content-type", b"text/plain; charset=utf-8"), (b"date", formatdate(usegmt=True).encode())]
    if scope["path"] == "/hello":
        headers.append((b"expires", formatdate(time.time() + 5, usegmt=True).encode()))
        greeting = "Hello!"
    else:
        # No Expires: cached for the policy's estimated interval
        greeting = "World!"

    await send({"type": "http.response.start", "status": 200, "headers": headers})
    await send({"type": "http.response.body", "body": f"{greeting} {datetime.now(timezone.utc).isoformat()}".encode()})


cached_app = ASGICacheMiddleware(
    app,
    storage=AsyncInMemoryStorage(max_size=1024),
    policy=CachePolicy(estimated_interval=3_000),
)


async def main():
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=cached_app)) as client:
        while True:
            for path in ("/hello", "/world"):
                response = await client.get(f"http://testserver{path}")
                print(
                    f"{path}: {response.text} expires={response.headers['expires']} "
                    f"processed_requests={processed_requests}"
                )
            with yaspin.yaspin(text="Waiting 2 seconds before next request..."):
                await asyncio.sleep(2)


if __name__ == "__main__":
    asyncio.run(main())
