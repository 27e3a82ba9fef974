"""Billable credential selection consulted before video generation."""

from typing import Protocol

import typer


class CredentialProvider(Protocol):
    def has_selected_key(self) -> bool: ...

    def select_key(self) -> str: ...


class StaticCredentials:
    """A fixed key, billable or not."""

    def __init__(self, api_key: str | None = None) -> None:
        self.api_key = api_key

    def has_selected_key(self) -> bool:
        return bool(self.api_key)

    def select_key(self) -> str:
        return self.api_key or ""


class PromptedCredentials:
    """Ask the user for a paid key the first time one is needed."""

    def __init__(self, api_key: str | None = None) -> None:
        self.api_key = api_key

    def has_selected_key(self) -> bool:
        return bool(self.api_key)

    def select_key(self) -> str:
        if not self.api_key:
            self.api_key = typer.prompt(
                "Video generation needs a paid Gemini API key "
                "(https://ai.google.dev/gemini-api/docs/billing)",
                hide_input=True,
            )
        return self.api_key
