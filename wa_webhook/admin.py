"""Operator commands for inspecting and recovering the webhook queues."""
import argparse
import sys
from typing import List, Optional

from wa_webhook.logging_conf import logger, setup_logging
from wa_webhook.queue.models import QueuedEnvelope, is_malformed_entry
from wa_webhook.queue.store import build_store
from wa_webhook.queue.webhook_queue import WebhookQueue


def queue_depth(queue: WebhookQueue) -> int:
    """Envelopes waiting in the main queue."""
    return queue.depth()


def dead_letter_depth(queue: WebhookQueue) -> int:
    """Envelopes that exhausted their retries (plus undecodable entries)."""
    return queue.dead_letter_depth()


def requeue_dead_letters(queue: WebhookQueue) -> int:
    """Move every dead-lettered envelope back to the main queue with retries reset.

    Returns the number of envelopes moved. Undecodable entries stay in the
    dead-letter list. The drain is not atomic: a store failure midway leaves
    the remaining entries in the dead-letter list and raises QueueStoreError.
    """
    moved = 0
    kept: List[str] = []

    try:
        while True:
            raw = queue.pop_dead_letter()
            if raw is None:
                break

            try:
                envelope = QueuedEnvelope.from_json(raw)
            except ValueError as e:
                if not is_malformed_entry(raw):
                    logger.warning(f"Keeping undecodable dead-letter entry: {e}")
                kept.append(raw)
                continue

            try:
                queue.push(envelope.with_retries(0))
            except Exception:
                kept.append(raw)
                raise
            moved += 1
    finally:
        # Pushed back only after the drain, so the loop cannot pop them again
        for raw in kept:
            queue.push_dead_letter(raw)

    if moved:
        logger.info(f"[WEBHOOK] Re-queued {moved} dead-lettered webhooks")
    return moved


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for ``wa-webhook-admin``."""
    parser = argparse.ArgumentParser(prog="wa-webhook-admin", description=__doc__)
    parser.add_argument("--backend", help="queue backend (default: QUEUE_BACKEND)")
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("depth", help="print main and dead-letter queue depths")
    commands.add_parser("requeue", help="move dead-lettered webhooks back to the main queue")
    args = parser.parse_args(argv)

    setup_logging(level="WARNING")
    store = build_store(args.backend)
    queue = WebhookQueue(store)
    try:
        if args.command == "depth":
            print(f"queue: {queue_depth(queue)}")
            print(f"dead-letter: {dead_letter_depth(queue)}")
        else:
            print(f"requeued: {requeue_dead_letters(queue)}")
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
