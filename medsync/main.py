import asyncio
import logging
import sys
from datetime import date
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

from medsync.core.config import settings
from medsync.models.reminder import ReminderStatus
from medsync.services.medication_sync import MedicationSync
from medsync.utils.datetime_parser import canonical_date_string


GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
BLUE = "\033[94m"
CYAN = "\033[96m"
RESET = "\033[0m"
BOLD = "\033[1m"

STATUS_MARKERS = {
    ReminderStatus.TAKEN: ("●", GREEN),
    ReminderStatus.SKIPPED: ("○", RED),
    ReminderStatus.PENDING: ("◌", YELLOW),
}


#------This Function handles the Logging Setup---------
def setup_logging():
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


#------This Function prints status-------
def print_status(icon, text, color=GREEN):
    print(f"  {icon} {color}{text}{RESET}")


#------This Function prints section-------
def print_section(title):
    print(f"\n{BLUE}{BOLD}── {title} ──{RESET}\n")


#------This Function reads a CLI flag value---------
def _get_cli_arg_value(flag: str) -> Optional[str]:
    for index, arg in enumerate(sys.argv):
        if arg == flag and index + 1 < len(sys.argv):
            return sys.argv[index + 1]
        if arg.startswith(f"{flag}="):
            return arg.split("=", 1)[1]
    return None


#------This Function prints the schedule for a date-------
async def show_schedule(sync: MedicationSync, day: str):
    print_section("Medications")
    meds = await sync.load_medications()
    if meds.synthetic:
        print_status("●", "Backend unavailable, showing sample medications", YELLOW)
    else:
        print_status("●", f"{len(sync.catalog)} medication(s) loaded")

    print_section(f"Schedule for {day}")
    result = await sync.select_date(day)
    if result.stale:
        return
    if result.synthetic:
        print_status("●", "Showing sample reminders", YELLOW)

    slots = result.value or []
    if not slots:
        print(f"  {CYAN}›{RESET} Nothing scheduled")
        return

    for slot in slots:
        print(f"  {BOLD}{slot.time}{RESET}")
        for entry in slot.medications:
            icon, color = STATUS_MARKERS[entry.status]
            print_status(icon, f"{entry.medication.name} {entry.medication.dosage} [{entry.status.value}]", color)

    summary = sync.builder.summarize(slots)
    print(f"\n  {CYAN}→{RESET} {summary.taken} taken, {summary.skipped} skipped, {summary.pending} pending")


async def main():
    setup_logging()

    demo = "--demo" in sys.argv
    raw_date = _get_cli_arg_value("--date")
    day = canonical_date_string(raw_date) if raw_date else date.today().isoformat()
    if not day:
        print_status("●", f"Invalid --date value: {raw_date}", RED)
        return 1

    if not demo and not settings.demo_mode:
        settings.validate_required_settings()

    sync = MedicationSync(demo_mode=demo or settings.demo_mode)
    try:
        await show_schedule(sync, day)
    finally:
        await sync.close()
    return 0


def run():
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
