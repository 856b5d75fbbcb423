"""AI chat about the current schema."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from rich.console import Group
from rich.text import Text

from sqldeck.domains.shell.app.screen import Screen
from sqldeck.domains.shell.app.view_controller import ViewMode
from sqldeck.shared.app.messages import ChatResponse, ModelsLoaded
from sqldeck.shared.app.operation import OutcomeKind
from sqldeck.shared.core.errors import DataAccessError

if TYPE_CHECKING:
    from rich.console import RenderableType

    from sqldeck.domains.shell.app.events import KeyEvent, PasteEvent
    from sqldeck.domains.shell.app.view_controller import ViewController
    from sqldeck.shared.app.messages import Completion
    from sqldeck.shared.app.services import AppServices
    from sqldeck.shared.app.tasks import Task
    from sqldeck.shared.core.cancellation import CancellationToken
    from sqldeck.shared.core.models import ChatReply

PROVIDERS = ("ollama", "openai", "anthropic")

CONSENT_TEXT = (
    "The chat sends your prompt and the table and column names of the current "
    "schema to the selected AI provider. Row data is never sent."
)


@dataclass(frozen=True)
class ModelsRequest:
    provider: str


@dataclass(frozen=True)
class ChatRequest:
    provider: str
    model: str
    schema: str
    prompt: str


def fetch_models(services: AppServices, token: CancellationToken, request: ModelsRequest) -> list[str]:
    if services.data_access is None:
        raise DataAccessError("not connected")
    return services.data_access.get_ai_models(token, request.provider)


def send_chat(services: AppServices, token: CancellationToken, request: ChatRequest) -> ChatReply:
    if services.data_access is None:
        raise DataAccessError("not connected")
    return services.data_access.send_ai_chat(token, request.provider, request.model, request.schema, request.prompt)


class ChatView(Screen):
    mode = ViewMode.CHAT
    title = "AI Chat"

    def __init__(self, controller: ViewController) -> None:
        super().__init__(controller)
        preferences = self.services.preferences
        provider = preferences.get("last_ai_provider", "") or PROVIDERS[0]
        self.provider = provider if provider in PROVIDERS else PROVIDERS[0]
        self.model = preferences.get("last_ai_model", "") or ""
        self.models: list[str] = []
        self.input = ""
        self.turns: list[tuple[str, str]] = []
        self.last_sql: str | None = None
        self.models_op = self.retryable(
            "models",
            lambda token, request: fetch_models(self.services, token, request),
            lambda request, outcome: ModelsLoaded(provider=request.provider, outcome=outcome),
        )
        self.send_op = self.retryable(
            "chat",
            lambda token, request: send_chat(self.services, token, request),
            lambda request, outcome: ChatResponse(prompt=request.prompt, outcome=outcome),
        )

    @property
    def consented(self) -> bool:
        return bool(self.services.preferences.get("ai_consent", False))

    @property
    def context(self) -> str:  # type: ignore[override]
        return "chat" if self.consented else "consent"

    @property
    def captures_text(self) -> bool:  # type: ignore[override]
        return self.consented

    def _schema(self) -> str:
        browser = self.controller.screens.get(ViewMode.BROWSER)
        return getattr(browser, "current_schema", "") or ""

    def on_enter(self) -> None:
        if self.consented and not self.models and not self.models_op.is_running:
            self.schedule(self.load_models())

    def load_models(self) -> Task | None:
        task = self.models_op.start(ModelsRequest(self.provider), self.query_timeout())
        if task is not None:
            self.error = None
        return task

    def _remember_choice(self) -> None:
        preferences = self.services.preferences
        preferences.set("last_ai_provider", self.provider)
        preferences.set("last_ai_model", self.model)
        preferences.save()

    # -- input ------------------------------------------------------------

    def on_key(self, event: KeyEvent) -> list[Task]:
        for operation in (self.models_op, self.send_op):
            if operation.prompt_active:
                _, task = operation.handle_key(event.key)
                return [task] if task else []

        action = self.action_for(event)
        if not self.consented:
            if action == "accept":
                preferences = self.services.preferences
                preferences.set("ai_consent", True)
                preferences.save()
                task = self.load_models()
                return [task] if task else []
            if action == "back":
                return self.back(ViewMode.BROWSER)
            return []

        if action == "send":
            return self.send()
        if action == "reload_models":
            self.models = []
            task = self.load_models()
            return [task] if task else []
        if action == "next_provider":
            return self._next_provider()
        if action == "next_model":
            self._next_model()
            return []
        if action == "run_sql":
            return self._run_sql()
        if action == "back":
            if self.send_op.cancel() or self.models_op.cancel():
                return []
            return self.back(ViewMode.BROWSER)
        if event.key == "backspace":
            self.input = self.input[:-1]
        elif event.is_printable:
            self.input += event.character or ""
        return []

    def on_paste(self, event: PasteEvent) -> list[Task]:
        if self.consented:
            self.input += event.text.replace("\n", " ")
        return []

    def _next_provider(self) -> list[Task]:
        if self.models_op.is_running:
            return []
        self.provider = PROVIDERS[(PROVIDERS.index(self.provider) + 1) % len(PROVIDERS)]
        self.models = []
        self.model = ""
        self._remember_choice()
        task = self.load_models()
        return [task] if task else []

    def _next_model(self) -> None:
        if not self.models:
            return
        index = self.models.index(self.model) + 1 if self.model in self.models else 0
        self.model = self.models[index % len(self.models)]
        self._remember_choice()

    def _run_sql(self) -> list[Task]:
        editor = self.controller.screens.get(ViewMode.EDITOR)
        if not self.last_sql or editor is None:
            self.controller.set_status("No SQL to run")
            return []
        editor.set_text(self.last_sql)
        self.controller.push_view(ViewMode.EDITOR)
        return editor.execute()

    def send(self) -> list[Task]:
        prompt = self.input.strip()
        if not prompt:
            return []
        if not self.model:
            self.error = "no model selected"
            return []
        task = self.send_op.start(ChatRequest(self.provider, self.model, self._schema(), prompt), self.query_timeout())
        if task is None:
            return []
        self.turns.append(("user", prompt))
        self.input = ""
        self.error = None
        return [task]

    # -- completions ------------------------------------------------------

    def handle_message(self, message: Completion) -> list[Task]:
        if isinstance(message, ModelsLoaded):
            return self._on_models(message)
        if isinstance(message, ChatResponse):
            return self._on_reply(message)
        return []

    def _on_models(self, message: ModelsLoaded) -> list[Task]:
        resolution = self.models_op.resolve(message)
        if resolution.stale or resolution.prompted:
            return []
        if resolution.retrying:
            return [resolution.task]
        outcome = resolution.outcome
        if outcome.kind is OutcomeKind.FAILED:
            self.error = outcome.error_message
        elif outcome.kind is OutcomeKind.SUCCESS and message.provider == self.provider:
            self.models = list(outcome.value)
            if self.model not in self.models:
                self.model = self.models[0] if self.models else ""
                self._remember_choice()
        return []

    def _on_reply(self, message: ChatResponse) -> list[Task]:
        resolution = self.send_op.resolve(message)
        if resolution.stale or resolution.prompted:
            return []
        if resolution.retrying:
            return [resolution.task]
        outcome = resolution.outcome
        if outcome.kind is OutcomeKind.FAILED:
            self.error = outcome.error_message
        elif outcome.kind is OutcomeKind.SUCCESS:
            reply: ChatReply = outcome.value
            self.turns.append(("assistant", reply.text))
            if reply.sql:
                self.last_sql = reply.sql
        return []

    # -- rendering --------------------------------------------------------

    def render(self) -> RenderableType:
        if not self.consented:
            return Group(
                Text(self.title, style="bold"),
                Text(CONSENT_TEXT),
                Text("a: accept   esc: decline", style="dim"),
            )
        parts: list[RenderableType] = [
            Text.assemble(
                (self.title, "bold"),
                ("  provider: ", "dim"),
                (self.provider, "cyan"),
                ("  model: ", "dim"),
                (self.model or "-", "cyan"),
            )
        ]
        for role, text in self.turns[-max(1, self.height - 8) :]:
            style = "bold green" if role == "user" else "bold blue"
            parts.append(Text.assemble((f"{role}: ", style), text))
        if self.last_sql:
            parts.append(Text("ctrl+e runs the suggested SQL", style="dim"))
        parts.append(Text.assemble(("> ", "bold"), self.input, (" ", "reverse")))
        for operation, subject in ((self.models_op, "Loading models"), (self.send_op, "Chat request")):
            if operation.prompt_active:
                parts.append(operation.prompt.render(subject))
            elif operation.is_running:
                parts.append(Text(f"{subject}... (esc to cancel)", style="yellow"))
        error = self.render_error()
        if error is not None:
            parts.append(error)
        return Group(*parts)
