"""
Example ChargeTunis client driven from the console.

This demonstrates the full flow against a running backend:
1. Station polling with a map surface that prints the stations
2. Selecting the first station and buying 10 kWh with the demo card
3. Closing the session and asking for fresh availability

Point it at your backend with BACKEND_URL (default: http://localhost:8000).
"""

import asyncio

from chargetunis import ChargeApp
from chargetunis.config import get_settings
from chargetunis.logging_utils import setup_logging
from chargetunis.session import Result


class ConsoleMap:
    """Map surface that lists stations instead of drawing markers."""

    def __init__(self):
        self.first_render = asyncio.Event()

    def render(self, stations, on_select):
        for station in stations:
            print(
                f"  {station.name} ({station.city}) • {station.power_kw}kW • "
                f"{station.availability_label} • {station.price_tnd_per_kwh} TND/kWh"
            )
        if stations:
            self.first_render.set()


async def main():
    """Run one simulated charging payment."""
    settings = get_settings()
    setup_logging(settings.log_level)

    surface = ConsoleMap()
    app = ChargeApp.from_settings(settings, map_surface=surface)
    await app.start()

    try:
        await asyncio.wait_for(surface.first_render.wait(), timeout=30)

        station = app.directory.stations[0]
        details = app.select_station(station)
        print(f"Estimated: {details.estimate_display} TND")

        state = await app.session.create_intent()
        if not isinstance(state, Result):
            print(f"Amount: {state.amount_display} TND")
            state = await app.session.confirm_payment()

        print(state.result.summary)
        await app.finish_session(refresh=True)
    finally:
        await app.stop()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nStopped")
