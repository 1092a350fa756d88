"""
Quick diagnostic to verify the OpenAI connection used by the tutor.

This script helps you:
1. Check that OPENAI_API_KEY is set (and not the placeholder)
2. Send a tiny "are you there" request
3. Send one algebra and one English tutoring prompt

Usage:
    python scripts/check_openai_connection.py
    python scripts/check_openai_connection.py --only connection
"""

import argparse
import asyncio
import os
import sys

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, os.path.join(project_root, "sveti_tutor", "src"))

from sveti_tutor.completion_client import OpenAICompletionClient
from sveti_tutor.config import TutorSettings
from sveti_tutor.prompts import get_system_prompt

CHECKS = {
    "connection": {
        "messages": [
            {"role": "system", "content": "You are a helpful assistant."},
            {"role": "user", "content": 'Respond with just "Hello, I am working!" to confirm the connection.'},
        ],
        "max_tokens": 50,
        "temperature": 0.1,
    },
    "algebra": {
        "messages": [
            {"role": "system", "content": get_system_prompt("algebra", "steps")},
            {"role": "user", "content": "Can you help me solve 2x + 5 = 13? Please explain step by step."},
        ],
        "max_tokens": 300,
        "temperature": 0.7,
    },
    "ela": {
        "messages": [
            {"role": "system", "content": get_system_prompt("ela", "outline")},
            {"role": "user", "content": "I need to write an essay about climate change. How should I organize it?"},
        ],
        "max_tokens": 300,
        "temperature": 0.7,
    },
}


def check_api_key(settings: TutorSettings) -> bool:
    if not settings.has_api_key:
        print("❌ OPENAI_API_KEY is missing or still the placeholder value")
        return False
    key = settings.openai_api_key
    print(f"✅ OPENAI_API_KEY found ({key[:7]}...)")
    return True


async def run_check(client: OpenAICompletionClient, name: str) -> bool:
    check = CHECKS[name]
    print(f"\n📡 Running '{name}' check with model {client.model}...")
    result = await client.complete(
        check["messages"],
        max_tokens=check["max_tokens"],
        temperature=check["temperature"]
    )
    if not result.ok:
        print(f"❌ {name} failed: {result.error} (category: {result.category.value})")
        return False
    preview = result.content[:200] + ("..." if len(result.content) > 200 else "")
    print(f"✅ {name} succeeded")
    print(f"📝 Response: {preview}")
    return True


async def main(only=None) -> int:
    settings = TutorSettings.from_env()
    print("🧪 Testing OpenAI API for the Sveti tutor\n")

    if not check_api_key(settings):
        return 1

    client = OpenAICompletionClient(api_key=settings.openai_api_key, model=settings.openai_model)
    names = [only] if only else list(CHECKS.keys())

    passed = 0
    for name in names:
        if await run_check(client, name):
            passed += 1

    print(f"\n{'✅' if passed == len(names) else '⚠️'} {passed}/{len(names)} checks passed")
    return 0 if passed == len(names) else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Check the OpenAI connection used by the tutor")
    parser.add_argument("--only", choices=sorted(CHECKS.keys()), help="Run a single check")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.only)))
