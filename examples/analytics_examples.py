import asyncio
import logging
import os

from appstack import create_client
from appstack.analytics import set_analytics_log_level
from appstack.page import BrowserPage, VisibilityState


async def main():
    """Example usage of AppStack analytics."""
    logging.basicConfig(level=logging.INFO)
    set_analytics_log_level(logging.DEBUG)

    app_id = os.environ.get("APPSTACK_APP_ID", "demo-app")
    token = os.environ.get("APPSTACK_TOKEN")

    # Server-side usage: no page, batches go out over HTTP
    print("\n=== Tracking from a script ===")
    async with create_client(app_id, token=token) as client:
        client.analytics.track("script_started", {"source": "examples"})
        for i in range(3):
            client.analytics.track("item_processed", {"index": i})
        print("Queued events:", len(client.analytics.state.requests_queue))

        # Give the processor one throttle interval to deliver
        await asyncio.sleep(1.5)
        print("Queued events after one interval:", len(client.analytics.state.requests_queue))

    # Page usage: beacons, and a flush of everything when the page hides
    print("\n=== Tracking from a page ===")
    page = BrowserPage("https://app.example.com/dashboard")
    async with create_client(app_id, token=token, page=page) as client:
        for i in range(7):
            client.analytics.track("widget_viewed", {"widget": f"w{i}"})

        page.set_visibility_state(VisibilityState.HIDDEN)
        print("Queued events after hide:", len(client.analytics.state.requests_queue))
        await asyncio.sleep(1)
        await page.aclose()


if __name__ == "__main__":
    asyncio.run(main())
