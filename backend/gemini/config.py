"""
Gemini model configuration.

Priority chain: preferred model first, most-available free tier last.
On 429 RESOURCE_EXHAUSTED, the fallback helper tries each model in order.

Override the primary model via GEMINI_MODEL env var (e.g. in .env):
  GEMINI_MODEL=gemini-2.5-pro
"""

import os

_primary = os.environ.get("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_MODEL_CHAIN = list(dict.fromkeys([
    _primary,
    "gemini-2.5-flash",
    "gemini-2.0-flash",
]))

REPORT_MAX_OUTPUT_TOKENS = 1024
REPORT_TEMPERATURE = 0.3
