"""Main entry point for the Pitch Coach CLI."""

import argparse
import sys
from typing import List, Optional

import pyfiglet

from ..audio.audio_input import default_input_device, list_input_devices
from ..audio.audio_providers import WavFileAudioInput
from ..core.config import ConfigManager
from ..core.factory import ComponentFactory
from ..core.scheduler import ManualScheduler, RealtimeScheduler
from ..detection.stability_analyzer import AggregationMode
from ..logger import get_logger
from ..logging_config import setup_logging
from ..note_types import ChallengeState, ClassifierState, Gender, VocalRange
from ..note_utils import DEFAULT_PRACTICE_NOTES, format_note, notes_in_range, parse_note

logger = get_logger(__name__)

# Slack on top of the timed phases before a round is abandoned
TIMEOUT_MARGIN = 2.0


def list_devices(_args) -> int:
    devices = list_input_devices()
    if not devices:
        print("No input devices found.")
        return 1

    default_id, _ = default_input_device()
    print("Available input devices:")
    for device_id, info in devices.items():
        marker = "*" if device_id == default_id else " "
        print(
            f"{marker} {device_id}: {info['name']} "
            f"({info['max_input_channels']} ch, {info['default_samplerate']:.0f} Hz)"
        )
    return 0


def analyze_file(args, factory: ComponentFactory) -> int:
    """Run the estimator over a WAV file and print the stable note."""
    scheduler = ManualScheduler()
    try:
        audio_input = factory.create_audio_input(
            "wav", file_path=args.file, chunk_size=args.chunk_size, realtime=False
        )
    except (RuntimeError, OSError) as e:
        print(f"Could not open {args.file}: {e}")
        return 1

    session = factory.create_detection_service(scheduler, audio_input=audio_input)
    aggregator = factory.create_aggregator()
    aggregator.open_window()

    frame_time = args.chunk_size / audio_input.sample_rate

    def on_estimate(frame, estimate):
        sample = aggregator.accept(estimate, timestamp=scheduler.now())
        if args.verbose:
            note = format_note(sample.position, args.flats) if sample else "-"
            print(
                f"{scheduler.now():7.3f}s  {estimate.frequency:8.2f} Hz  "
                f"conf {estimate.confidence:.2f}  {note}"
            )

    if not session.start(on_estimate):
        print(session.last_error)
        return 1

    while not audio_input.exhausted:
        scheduler.advance(frame_time)
    session.stop()
    aggregator.close_window()

    verdict = aggregator.evaluate(AggregationMode.RANGE_TEST)
    print(f"Frames analyzed: {session.frames_processed}")
    print(f"Confident samples: {verdict.sample_count}")
    if verdict.ok:
        print(
            f"Stable note: {format_note(verdict.position, args.flats)} "
            f"({verdict.cents:+.1f} cents, {verdict.mode_count}/{verdict.sample_count})"
        )
        return 0
    print(f"No stable note ({verdict.sufficiency.value})")
    return 2


def run_range(args, factory: ComponentFactory) -> int:
    """Walk through the vocal range test against the microphone."""
    scheduler = RealtimeScheduler()
    session = factory.create_detection_service(scheduler)
    classifier = factory.create_classifier(session, scheduler, device_id=args.device)
    classifier.events.on_classifier_state_changed(
        lambda state, payload: print(payload.get("feedback", ""))
    )

    classifier.select_gender(Gender(args.gender))
    timeout = classifier.timing.range_test_seconds + TIMEOUT_MARGIN

    try:
        for _ in range(args.attempts):
            if classifier.state is ClassifierState.RESULT:
                break
            input("Press Enter when ready...")
            if not classifier.start_range_test():
                continue
            scheduler.run_until(lambda: not classifier.is_listening, timeout)
    except (KeyboardInterrupt, EOFError):
        print()
    finally:
        classifier_result = classifier.state is ClassifierState.RESULT
        if not classifier_result:
            classifier.reset()
        session.stop()

    if not classifier_result:
        print("Range test not completed.")
        return 1

    vocal_range = classifier.confirm_range()
    print(f"Practice notes: {', '.join(str(n) for n in notes_in_range(vocal_range))}")
    return 0


def run_challenge(args, factory: ComponentFactory) -> int:
    """Play ear-training rounds against the microphone."""
    if args.low or args.high:
        try:
            practice = notes_in_range(
                VocalRange(parse_note(args.low or "C3"), parse_note(args.high or "C5"))
            )
        except ValueError as e:
            print(f"Invalid range: {e}")
            return 1
    else:
        practice = list(DEFAULT_PRACTICE_NOTES)

    scheduler = RealtimeScheduler()
    session = factory.create_detection_service(scheduler)
    challenge = factory.create_challenge(session, scheduler, device_id=args.device)
    session.events.on_error(lambda message: print(message))

    def on_state(state, payload):
        if state is ChallengeState.PLAYING:
            print(pyfiglet.figlet_format(format_note(payload["target"], args.flats)))
        elif state is not ChallengeState.IDLE:
            print(challenge.status_text())

    challenge.events.on_challenge_state_changed(on_state)
    timeout = challenge.timing.pre_listen_seconds + challenge.timing.analysis_seconds

    try:
        for _ in range(args.rounds):
            if not challenge.start(practice):
                return 1
            scheduler.run_until(
                lambda: challenge.state is ChallengeState.RESULT,
                timeout + TIMEOUT_MARGIN,
            )
    except KeyboardInterrupt:
        print()
    finally:
        challenge.reset()

    stats = challenge.stats
    print(f"\nIn tune: {stats['in_tune']} / {stats['attempts']}")
    return 0


def main(args: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI.

    Args:
        args: Command line arguments, or None to use sys.argv

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = argparse.ArgumentParser(description="Pitch Coach - singing pitch trainer")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--config-dir", default=None, help="Configuration directory (default ~/.config/pitch_coach)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    subparsers.add_parser("devices", help="List audio input devices")

    analyze_parser = subparsers.add_parser("analyze", help="Find the stable note in a WAV file")
    analyze_parser.add_argument("file", help="Path to a WAV file")
    analyze_parser.add_argument(
        "--chunk-size", type=int, default=2048, help="Samples per analysis frame"
    )
    analyze_parser.add_argument(
        "--verbose", "-v", action="store_true", help="Print every frame's estimate"
    )
    analyze_parser.add_argument(
        "--flats", action="store_true", help="Use flat notes instead of sharps"
    )

    range_parser = subparsers.add_parser("range", help="Discover your vocal range")
    range_parser.add_argument(
        "--gender", choices=[g.value for g in Gender], default=Gender.MALE.value
    )
    range_parser.add_argument(
        "--device", type=int, default=None, help="Audio input device ID"
    )
    range_parser.add_argument(
        "--attempts", type=int, default=6, help="Maximum number of sung notes"
    )

    challenge_parser = subparsers.add_parser("challenge", help="Ear-training rounds")
    challenge_parser.add_argument("--low", default=None, help="Lowest note, e.g. C3")
    challenge_parser.add_argument("--high", default=None, help="Highest note, e.g. C5")
    challenge_parser.add_argument(
        "--rounds", type=int, default=1, help="Number of rounds to play"
    )
    challenge_parser.add_argument(
        "--device", type=int, default=None, help="Audio input device ID"
    )
    challenge_parser.add_argument(
        "--flats", action="store_true", help="Use flat notes instead of sharps"
    )

    parsed_args = parser.parse_args(args)
    setup_logging("DEBUG" if parsed_args.debug else None)

    if parsed_args.command == "devices":
        return list_devices(parsed_args)

    if parsed_args.command is None:
        parser.print_help()
        return 1

    factory = ComponentFactory(ConfigManager(parsed_args.config_dir))
    if parsed_args.command == "analyze":
        return analyze_file(parsed_args, factory)
    if parsed_args.command == "range":
        return run_range(parsed_args, factory)
    if parsed_args.command == "challenge":
        return run_challenge(parsed_args, factory)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
