"""
DIRAC — oracle.py
Ollama client. One prompt in, the model's free text out.
The prompt carries the request plus the environment the command will run in:
working directory, OS kind and a shallow listing of that directory.
"""
from __future__ import annotations

import logging, platform
from typing import Any, Dict

import requests

from dirac.config import cfg, DEFAULT_API_URL
from dirac.errors import AIProcessingError
from dirac.tools import DirectoryState, list_directory

log = logging.getLogger(__name__)

OS_KINDS = ("linux", "macos", "windows")

PROMPT_TEMPLATE = """\
You turn plain-language requests into one exact, runnable terminal command.

Rules:
1. The command must run as-is, with no placeholders or edits needed.
   When the request is ambiguous, prefer a harmless read-only command such as 'ls' or 'pwd'.
   Requests like 'go to', 'open' or 'change to' a directory become 'cd' commands.
2. Fix obvious typos (for example 'lsbkk' means 'ls') and say so in the explanation.
3. Use the environment below. Paths you mention must exist in it.
4. Reply with exactly these two lines and nothing else:
COMMAND: <the command to execute>
EXPLANATION: <one short sentence on what it does, including any correction you made>

Request: '{request}'
Additional context: '{context}'
Environment:
  Working directory: {cwd}
  OS: {os_kind}
  Directory contents:
{listing}
"""


def os_kind() -> str:
    system = platform.system().lower()
    if system.startswith("win"):
        return "windows"
    if system == "darwin":
        return "macos"
    return "linux"


class OllamaOracle:
    def __init__(
        self,
        state: DirectoryState = None,
        model: str = None,
        api_url: str = None,
        timeout: int = None,
    ):
        self.state   = state or DirectoryState()
        self.model   = model or cfg.model()
        self.api_url = api_url or cfg.get("api_url") or DEFAULT_API_URL
        self.timeout = timeout or int(cfg.get("request_timeout", 120))

    def build_prompt(self, request: str, context: str = "") -> str:
        cwd = self.state.read()
        limit = int(cfg.get("max_listing_entries", 200))
        entries = list_directory(cwd, limit=limit)
        listing = "\n".join(f"    {e}" for e in entries) or "    (empty)"
        return PROMPT_TEMPLATE.format(
            request=request, context=context or "",
            cwd=cwd, os_kind=os_kind(), listing=listing,
        )

    def resolve(self, request: str, context: str = "") -> str:
        """Send one non-streaming generate call and return the model text.

        Raises AIProcessingError for transport failures and for errors the
        service reports. A reply without a usable ``response`` field yields
        an empty string.
        """
        payload = {
            "model": self.model,
            "prompt": self.build_prompt(request, context),
            "stream": False,
        }
        log.info("oracle request | model=%s | url=%s", self.model, self.api_url)
        try:
            resp = requests.post(self.api_url, json=payload, timeout=self.timeout)
        except requests.exceptions.Timeout:
            log.warning("oracle timeout after %ss", self.timeout)
            raise AIProcessingError(
                "Connection to Ollama service timed out. "
                "Please check if the service is responding."
            )
        except requests.exceptions.ConnectionError:
            log.warning("oracle unreachable at %s", self.api_url)
            raise AIProcessingError(self.not_running_message())
        except requests.exceptions.RequestException as exc:
            log.warning("oracle transport failure: %s", exc)
            raise AIProcessingError(f"Failed to connect to AI service: {exc}")
        return self._extract(resp)

    def _extract(self, resp) -> str:
        try:
            data: Any = resp.json()
        except ValueError:
            log.warning("oracle replied with non-JSON body (HTTP %s)", resp.status_code)
            return ""
        if not isinstance(data, dict):
            return ""
        if data.get("error") is not None:
            raise AIProcessingError(self._error_message(data))
        text = data.get("response")
        return text.strip() if isinstance(text, str) else ""

    def _error_message(self, data: Dict[str, Any]) -> str:
        error = data["error"]
        msg = error if isinstance(error, str) else str(error)
        log.warning("oracle reported error: %s", msg)
        if "model" in msg:
            return (
                f"Model '{self.model}' not found. To install the model:\n"
                "1. Ensure Ollama is running\n"
                f"2. Run 'ollama pull {self.model}' to download the model"
            )
        return f"Ollama error: {msg}"

    def not_running_message(self) -> str:
        return (
            "Ollama service is not running. To install and start Ollama:\n"
            "1. Visit https://ollama.ai to download and install Ollama\n"
            "2. Start the Ollama service\n"
            f"3. Run 'ollama pull {self.model}' to download the model"
        )
