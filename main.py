#!/usr/bin/env python3
"""
# WildGuard AI

Interactive terminal chat with the offline survival assistant.

Usage: ``python main.py [assistant.yaml]``
"""

import logging
import sys

from wildguard_rag import create_assistant


def chat_loop(assistant, read=input, write=print):
    """Answer lines from *read* until the user types ``exit``."""
    write(f"\n{assistant.messages.value[0].text}\n")
    write("Type 'reset' to start over or 'exit' to quit.")

    while True:
        user_input = read("\n> ").strip()
        if not user_input:
            continue
        if user_input.lower() == "exit":
            write("\nStay safe out there!")
            break
        if user_input.lower() == "reset":
            assistant.reset_session()
            write(assistant.messages.value[0].text)
            continue

        turn = assistant.send_message(user_input)
        if turn is not None:
            turn.result()
        write(assistant.messages.value[-1].text)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    assistant = create_assistant(sys.argv[1] if len(sys.argv) > 1 else None)
    try:
        chat_loop(assistant)
    finally:
        assistant.close()
