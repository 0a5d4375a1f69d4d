"""
VocabForge: Spaced-repetition vocabulary trainer
-------------------------------------------------

Console entry point: review due words, add words, generate batches.
"""

import argparse
import asyncio
import logging
import os
import shutil
import subprocess
import sys

from vocabforge.config import Config
from vocabforge.exceptions import NoEligibleItems, VocabForgeError
from vocabforge.generation import GenerationOrchestrator, ImageCache, RequestQueue
from vocabforge.models import LanguageLevel, StudyMode, StudySource
from vocabforge.providers import EdgeTTSSpeaker, NullSpeaker
from vocabforge.services import SessionController, SessionState, StorageService, VocabularyService
from vocabforge.services.vocabulary_service import StorageBackend, create_repository
from vocabforge.utils import setup_logger


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Review vocabulary with spaced repetition.")
    parser.add_argument("--mode", choices=[m.value for m in StudyMode if m != StudyMode.MATCH],
                        default=StudyMode.TYPING.value, help="Study mode")
    parser.add_argument("--source", choices=[s.value for s in StudySource], default=None,
                        help="Review pool (defaults to the saved preference)")
    parser.add_argument("--add", nargs=2, metavar=("NATIVE", "TARGET"),
                        help="Add a word; pass '-' for the side to translate")
    parser.add_argument("--generate", metavar="TOPIC", help="Generate a batch of words on a topic")
    parser.add_argument("--backend", choices=[b.value for b in StorageBackend], default="csv")
    parser.add_argument("--stats", action="store_true", help="Show statistics and exit")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


async def ask(prompt: str) -> str:
    return await asyncio.to_thread(input, prompt)


def play_audio(path: str) -> None:
    """Open a synthesized clip in the system's default player."""
    print(f"🔊 {path}")
    try:
        if sys.platform == "win32":
            os.startfile(path)
            return
        opener = "open" if sys.platform == "darwin" else shutil.which("xdg-open")
        if opener:
            subprocess.Popen([opener, path], stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
    except OSError as e:
        logging.getLogger(__name__).warning("Could not start audio player: %s", e)


async def run_session(service: VocabularyService, orchestrator: GenerationOrchestrator,
                      mode: StudyMode, source) -> None:
    try:
        selection = service.select_for_review(source)
    except NoEligibleItems as e:
        print(f"❌ {e}")
        return

    if selection.requires_confirmation:
        answer = await ask("Nothing to review today. Start free practice with random words? [y/N] ")
        if answer.strip().lower() not in ("y", "yes", "t", "tak"):
            return
        selection.confirm()

    settings = service.storage.load_settings()
    speaker = EdgeTTSSpeaker(player=play_audio) if settings.get("ENABLE_TTS") else NullSpeaker()
    controller = SessionController.from_selection(
        selection,
        mode,
        orchestrator=orchestrator,
        speaker=speaker,
        on_complete=service.apply_session_results,
        on_item_updated=service.update_item,
        style=orchestrator.config.visual_style,
    )

    while controller.is_active:
        item = controller.current_item
        print(f"\n[{controller.progress}]")
        image = await controller.load_image()
        if image and not image.startswith("data:"):
            print(f"🖼  {image}")

        if mode == StudyMode.FLASHCARDS:
            await ask(f"{item.gloss}  (Enter to reveal) ")
            print(f"→ {item.headword}" + (f"   “{item.example_sentence}”" if item.example_sentence else ""))
            answer = await ask("Did you know it? [y/n, q to quit] ")
            if answer.strip().lower() == "q":
                controller.exit()
                break
            controller.answer_flashcard(answer.strip().lower() in ("y", "yes", "t", "tak"))
            continue

        if mode == StudyMode.LISTENING:
            controller.play_pronunciation()
            text = await ask("Type what you hear (q to quit): ")
        else:
            text = await ask(f"{item.gloss} → ")
        if text.strip().lower() == "q":
            controller.exit()
            break

        if mode == StudyMode.LISTENING:
            feedback = controller.submit_listening(text)
        else:
            feedback = await controller.submit_typed(text)
        mark = "✅" if feedback.correct else "❌"
        print(f"{mark} {feedback.message}" + ("" if feedback.correct else f"  ({feedback.expected})"))

    await controller.speaker.close()
    if controller.state == SessionState.COMPLETED:
        correct = sum(1 for o in controller.outcomes if o.correct)
        print(f"\n🏁 {correct}/{len(controller.outcomes)} correct")


def print_stats(service: VocabularyService) -> None:
    stats = service.stats
    print(f"📚 Words: {stats.total_words}   ✅ Learned: {stats.learned_words}   "
          f"🔁 To review: {service.count_due()}   🆕 New: {service.count_new()}   "
          f"🔥 Streak: {stats.streak_days} days")


async def main(argv=None) -> bool:
    """Main entry point."""
    args = parse_args(argv)
    setup_logger(level=logging.DEBUG if args.verbose else logging.WARNING)

    storage = StorageService(repository=create_repository(StorageBackend(args.backend)))
    orchestrator = GenerationOrchestrator(
        storage.provider_configuration(),
        RequestQueue(Config.IMAGE_QUEUE_SPACING),
        ImageCache(),
    )
    service = VocabularyService(storage, orchestrator)
    service.load()

    try:
        if args.stats:
            print_stats(service)
            return True

        level = LanguageLevel(storage.load_settings().get("LEVEL", "B1"))
        if args.add:
            gloss, headword = (None if side == "-" else side for side in args.add)
            item = await service.add_word(gloss or "", headword or "", level=level)
            print(f"➕ {item.gloss} = {item.headword}")
            return True

        if args.generate:
            items = await service.generate_words(args.generate, level)
            for item in items:
                print(f"➕ {item.gloss} = {item.headword}")
            return True

        source = StudySource(args.source) if args.source else None
        await run_session(service, orchestrator, StudyMode(args.mode), source)
        print_stats(service)
        return True

    except (VocabForgeError, ValueError) as e:
        print(f"[ERROR] {e}")
        return False
    finally:
        await orchestrator.close()


def cli() -> None:
    try:
        success = asyncio.run(main())
        sys.exit(0 if success else 1)
    except (KeyboardInterrupt, EOFError):
        print("\n[!] Aborted by user.")
        sys.exit(1)


if __name__ == "__main__":
    cli()
