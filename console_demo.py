"""
Offline console demo: walks the scheduling engine on seeded data.

Uses the real booking service, conflict detection, slot generation and
cascade rescheduler over in-memory stores. No server, no network calls.

Usage:
    python console_demo.py
    python console_demo.py --scenario slots
    python console_demo.py --scenario cascade
    python console_demo.py --scenario overflow
"""

import argparse
import asyncio
import shlex
from typing import Optional

from provider_scheduling.booking_service import BookingService, Caller, CallerRole
from provider_scheduling.config import settings
from provider_scheduling.errors import SchedulingError
from provider_scheduling.notifications import LoggingNotifier, NotificationDispatcher
from provider_scheduling.scheduling.availability import resolve_day
from provider_scheduling.scheduling.time_window import format_hhmm, parse_hhmm
from provider_scheduling.stores.bookings import BookingStore
from provider_scheduling.stores.catalog import ServiceCatalog
from provider_scheduling.stores.customers import CustomerStore
from provider_scheduling.stores.demo_data import DEMO_PROVIDERS, next_monday, seed_demo_data
from provider_scheduling.stores.providers import ProviderStore
from provider_scheduling.utils import at_utc, utc_day_bounds

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

PROVIDER = DEMO_PROVIDERS[0]
PROVIDER_CALLER = Caller(user_id=PROVIDER.user_id, role=CallerRole.PROVIDER)


class ConsoleSession:
    """Drives the booking service from the terminal."""

    def __init__(self) -> None:
        self.service = BookingService(
            providers=ProviderStore(),
            catalog=ServiceCatalog(),
            bookings=BookingStore(),
            customers=CustomerStore(),
        )
        self.day = next_monday()
        seed_demo_data(
            self.service.providers, self.service.catalog, self.service.customers,
            self.service.bookings, booking_day=self.day,
        )
        self.notifier = LoggingNotifier()
        self.dispatcher = NotificationDispatcher(
            self.service.customers, self.service.bookings, self.notifier
        )

    def say(self, text: str) -> None:
        print(f"{GREEN}{text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def error(self, exc: SchedulingError) -> None:
        print(f"{RED}{exc.status_code} {exc.error_type}: {exc.message}{RESET}")

    # Pre-scripted scenarios for --scenario flag
    SCENARIOS: dict[str, list[str]] = {
        "slots": [
            "day",
            "slots SRV-2002",
            "slots SRV-2001",
            "slots SRV-2001 120",
        ],
        "cascade": [
            "day",
            "extend 09:00",
            "day",
        ],
        "overflow": [
            "book USR-C-3003 SRV-2001 16:00",
            "day",
            "extend 09:00",
            "day",
        ],
    }

    def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return

        self._banner(f"Scenario: {scenario}")
        for step in steps:
            print(f"\n{BLUE}[operator] {RESET}{step}")
            self._process_input(step)

        print(f"\n{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  Scenario '{scenario}' complete.{RESET}")
        print(f"{DIM}  Notifications sent: {len(self.notifier.sent)}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def run(self) -> None:
        self._banner("Console Demo")
        print(f"{DIM}  Commands: day | slots <serviceId> [minutes] | "
              f"book <customerId> <serviceId> <HH:mm> [minutes] | "
              f"extend <HH:mm|bookingId> [minutes] | quit{RESET}")

        while True:
            user_input = input(f"\n{BLUE}[operator] {RESET}").strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                return
            self._process_input(user_input)

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  PROVIDER SCHEDULING - {title}{RESET}")
        print(f"{BOLD}  Provider: {PROVIDER.business_name} ({PROVIDER.id}){RESET}")
        print(f"{BOLD}  Day: {self.day.strftime('%A %Y-%m-%d')} (UTC){RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def _process_input(self, text: str) -> None:
        command, *args = shlex.split(text)
        handler = {
            "day": self._show_day,
            "slots": self._show_slots,
            "book": self._book,
            "extend": self._extend,
        }.get(command.lower())
        if handler is None:
            print(f"{YELLOW}Unknown command: {command}{RESET}")
            return
        try:
            handler(*args)
        except SchedulingError as exc:
            self.error(exc)
        except (TypeError, ValueError) as exc:
            print(f"{YELLOW}Bad arguments for {command}: {exc}{RESET}")

    def _show_day(self) -> None:
        weekly = self.service.providers.get_availability(PROVIDER.id)
        windows = ", ".join(str(window) for window in resolve_day(weekly, self.day))
        buffer = weekly.buffer_time_minutes if weekly else 0
        self.system_log(f"Working windows: {windows or 'none'}; buffer {buffer} min")
        start, end = utc_day_bounds(self.day)
        for booking in self.service.bookings.list_for_provider(PROVIDER.id, start, end):
            colour = GREEN if booking.is_active else DIM
            print(
                f"{colour}  {format_hhmm(booking.scheduled_at)}-{format_hhmm(booking.ends_at)} "
                f"{booking.id} {booking.user_id} [{booking.status.value}]{RESET}"
            )

    def _show_slots(self, service_id: str, minutes: Optional[str] = None) -> None:
        slots = self.service.get_available_slots(PROVIDER.id, self.day, service_id, minutes)
        label = f"{service_id}" + (f" for {minutes} min" if minutes else "")
        self.say(f"Open slots ({label}): {', '.join(s.start_time for s in slots) or 'none'}")

    def _book(self, customer_id: str, service_id: str, start: str, minutes: Optional[str] = None) -> None:
        payload = {
            "serviceId": service_id,
            "scheduledAt": at_utc(self.day, parse_hhmm(start)).isoformat(),
        }
        if minutes:
            payload["durationMinutes"] = int(minutes)
        booking = self.service.create_booking(customer_id, payload)
        self.say(f"Booked {booking.id} at {format_hhmm(booking.scheduled_at)} "
                 f"for {booking.duration_minutes} min ({booking.total_price:.2f})")

    def _extend(self, target: str, minutes: Optional[str] = None) -> None:
        booking_id = self._resolve_booking(target)
        delta = int(minutes) if minutes else None
        result = self.service.extend_booking(booking_id, PROVIDER_CALLER, delta)
        self.say(
            f"Extended {booking_id} to {format_hhmm(result.booking.ends_at)}; "
            f"{result.rescheduled_count} booking(s) pushed back"
        )
        delivered = asyncio.run(self.dispatcher.dispatch(result.notices))
        self.system_log(f"Reschedule notices delivered: {delivered}")
        for message in self.notifier.sent[-delivered:] if delivered else []:
            self.system_log(f"To {message.recipient}: {message.subject}")

    def _resolve_booking(self, target: str) -> str:
        """Accept a booking id or the HH:mm start of an active booking on the demo day."""
        if target.upper().startswith("BK-"):
            return target
        wanted = at_utc(self.day, parse_hhmm(target))
        for booking in self.service.bookings.list_active(PROVIDER.id):
            if booking.scheduled_at == wanted:
                return booking.id
        raise ValueError(f"no active booking starts at {target}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline scheduling console demo")
    parser.add_argument(
        "--scenario",
        choices=["slots", "cascade", "overflow"],
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    args = parser.parse_args()

    print(f"{DIM}{settings.app_name}: extension increment "
          f"{settings.scheduling.extension_increment_minutes} min{RESET}")
    session = ConsoleSession()
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()


if __name__ == "__main__":
    main()
