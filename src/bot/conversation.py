"""
Pulseflow Debug Bot - Conversation State Machine
Created: 2026-01-15

Explicit finite-state conversation model for the chat bot.

States:
    IDLE → AWAITING_AUTOMATION_ID → CHATTING ⇄ AWAITING_CONFIRMATION(purpose)

Transitions are driven by classified user input (command, menu selection,
automation id/URL, yes/no, free text). Session state lives here, in the bot
layer; the diagnosis logic stays stateless.

The manager is transport-agnostic: handle() takes (chat_id, text) and
returns a BotReply that the Telegram adapter sends.
"""

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from loguru import logger

from src.agents.llm_analyzer import LLMAnalyzer
from src.clients.pulseflow_client import PulseflowClient, extract_automation_id
from src.config import Settings, get_settings
from src.diagnosis.diagnoser import Diagnosis, ExecutionDiagnoser
from src.diagnosis.models import AutomationRecord
from src.diagnosis.report import render_issue_recap, render_report


class ConversationState(str, Enum):
    IDLE = "idle"
    AWAITING_AUTOMATION_ID = "awaiting_automation_id"
    CHATTING = "chatting"
    AWAITING_CONFIRMATION = "awaiting_confirmation"


class ConfirmationPurpose(str, Enum):
    REDIAGNOSE = "rediagnose"
    END_SESSION = "end_session"


class InputKind(str, Enum):
    COMMAND = "command"
    MENU = "menu"
    AUTOMATION_ID = "automation_id"
    CONFIRM_YES = "confirm_yes"
    CONFIRM_NO = "confirm_no"
    FREE_TEXT = "free_text"


# ========================================
# Menu / keyboard labels
# ========================================
MENU_DEBUG = "🔍 Debug an automation"
MENU_HELP = "📖 Help"
MENU_CANCEL = "↩️ Cancel"
MENU_RERUN = "🔁 Re-run diagnosis"
MENU_SWITCH = "🔀 Another automation"
MENU_END = "👋 End session"
BUTTON_YES = "✅ Yes"
BUTTON_NO = "❌ No"

MENU_LABELS = {MENU_DEBUG, MENU_HELP, MENU_CANCEL, MENU_RERUN, MENU_SWITCH, MENU_END}

YES_WORDS = {"yes", "y", "yeah", "yep", "sure", "ok", "okay", BUTTON_YES.lower()}
NO_WORDS = {"no", "n", "nope", "nah", BUTTON_NO.lower()}

KEYBOARDS: Dict[ConversationState, List[List[str]]] = {
    ConversationState.IDLE: [[MENU_DEBUG], [MENU_HELP]],
    ConversationState.AWAITING_AUTOMATION_ID: [[MENU_CANCEL, MENU_HELP]],
    ConversationState.CHATTING: [[MENU_RERUN, MENU_SWITCH], [MENU_END]],
    ConversationState.AWAITING_CONFIRMATION: [[BUTTON_YES, BUTTON_NO]],
}

WELCOME_TEXT = (
    "🤖 *Pulseflow Debug Bot*\n\n"
    "Send me your automation ID and I'll analyze your recent executions to help diagnose issues.\n\n"
    "Just paste the automation ID (e.g., `cmkwhwr4j0001jp0412bdp8zw`) and I'll do the rest!"
)

HELP_TEXT = (
    "📖 *How to use*\n\n"
    "1. Go to Pulseflow and open your automation\n"
    "2. Copy the automation ID from the URL or settings\n"
    "3. Send it to me\n\n"
    "I'll fetch the last executions and analyze any issues! "
    "After that you can ask follow-up questions about the failure.\n\n"
    "Commands: /start, /help, /reset"
)


@dataclass
class ClassifiedInput:
    kind: InputKind
    text: str
    command: Optional[str] = None
    automation_id: Optional[str] = None


def classify_input(text: Optional[str]) -> ClassifiedInput:
    """
    Classify a raw chat message

    Order: command → menu label → yes/no → automation id/URL → free text
    """
    text = (text or "").strip()

    if text.startswith("/"):
        command = text[1:].split()[0].split("@")[0].lower() if len(text) > 1 else ""
        return ClassifiedInput(InputKind.COMMAND, text, command=command)

    if text in MENU_LABELS:
        return ClassifiedInput(InputKind.MENU, text)

    lowered = text.lower()
    if lowered in YES_WORDS:
        return ClassifiedInput(InputKind.CONFIRM_YES, text)
    if lowered in NO_WORDS:
        return ClassifiedInput(InputKind.CONFIRM_NO, text)

    automation_id = extract_automation_id(text)
    if automation_id:
        return ClassifiedInput(InputKind.AUTOMATION_ID, text, automation_id=automation_id)

    return ClassifiedInput(InputKind.FREE_TEXT, text)


@dataclass
class Session:
    """Per-chat conversation state"""

    chat_id: int
    state: ConversationState = ConversationState.IDLE
    purpose: Optional[ConfirmationPurpose] = None
    automation_id: Optional[str] = None
    automation: Optional[AutomationRecord] = None
    diagnosis: Optional[Diagnosis] = None
    history: List[Dict[str, str]] = field(default_factory=list)
    last_active: float = 0.0

    def transition(self, state: ConversationState, purpose: Optional[ConfirmationPurpose] = None) -> None:
        if state != self.state or purpose != self.purpose:
            logger.debug(
                f"[Bot] chat {self.chat_id}: {self.state.value} → {state.value}"
                + (f" ({purpose.value})" if purpose else "")
            )
        self.state = state
        self.purpose = purpose


class SessionStore:
    """In-memory sessions keyed by chat id, evicted after ttl_seconds of inactivity"""

    def __init__(self, ttl_seconds: int = 3600, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._sessions: Dict[int, Session] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, chat_id: int) -> Session:
        now = self.clock()
        with self._lock:
            self._evict_expired(now)
            session = self._sessions.get(chat_id)
            if session is None:
                session = Session(chat_id=chat_id)
                self._sessions[chat_id] = session
            session.last_active = now
            return session

    def reset(self, chat_id: int) -> Session:
        with self._lock:
            session = Session(chat_id=chat_id, last_active=self.clock())
            self._sessions[chat_id] = session
            return session

    def _evict_expired(self, now: float) -> None:
        expired = [cid for cid, s in self._sessions.items() if now - s.last_active > self.ttl_seconds]
        for cid in expired:
            del self._sessions[cid]
        if expired:
            logger.info(f"[Bot] Evicted {len(expired)} idle session(s)")


@dataclass
class BotReply:
    messages: List[str]
    state: ConversationState
    keyboard: List[List[str]] = field(default_factory=list)


class ConversationManager:
    """
    Drives the conversation state machine for every chat

    Usage:
        manager = ConversationManager(PulseflowClient(), ExecutionDiagnoser(), LLMAnalyzer())
        reply = manager.handle(chat_id, "cmkwhwr4j0001jp0412bdp8zw")
    """

    def __init__(
        self,
        client: PulseflowClient,
        diagnoser: Optional[ExecutionDiagnoser] = None,
        llm: Optional[LLMAnalyzer] = None,
        store: Optional[SessionStore] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.client = client
        self.diagnoser = diagnoser or ExecutionDiagnoser()
        self.llm = llm
        self.store = store or SessionStore(ttl_seconds=self.settings.SESSION_TTL_SECONDS)

    # ========================================
    # Entry point
    # ========================================

    def handle(self, chat_id: int, text: Optional[str]) -> BotReply:
        session = self.store.get(chat_id)
        message = classify_input(text)

        if message.kind == InputKind.COMMAND:
            return self._on_command(session, message)

        if session.state == ConversationState.AWAITING_CONFIRMATION:
            return self._on_confirmation(session, message)

        if message.kind == InputKind.AUTOMATION_ID:
            return self._diagnose(session, message.automation_id)

        if message.kind == InputKind.MENU:
            return self._on_menu(session, message.text)

        return self._on_free_text(session, message.text)

    # ========================================
    # Handlers
    # ========================================

    def _on_command(self, session: Session, message: ClassifiedInput) -> BotReply:
        if message.command == "start":
            session = self.store.reset(session.chat_id)
            return self._reply(session, WELCOME_TEXT)
        if message.command == "help":
            return self._reply(session, HELP_TEXT)
        if message.command == "reset":
            session = self.store.reset(session.chat_id)
            return self._reply(session, "🧹 Session cleared. Send an automation ID to start again.")
        return self._reply(session, f"Unknown command `/{message.command}`. Try /help.")

    def _on_menu(self, session: Session, label: str) -> BotReply:
        if label == MENU_HELP:
            return self._reply(session, HELP_TEXT)

        if label in (MENU_DEBUG, MENU_SWITCH):
            session.transition(ConversationState.AWAITING_AUTOMATION_ID)
            return self._reply(session, "📎 Paste the automation ID or its pulseflow.co link.")

        if label == MENU_CANCEL:
            session.transition(ConversationState.CHATTING if session.automation else ConversationState.IDLE)
            return self._reply(session, "Okay, cancelled.")

        if label == MENU_RERUN:
            if not session.automation_id:
                session.transition(ConversationState.AWAITING_AUTOMATION_ID)
                return self._reply(session, "No automation yet. Paste an automation ID first.")
            session.transition(ConversationState.AWAITING_CONFIRMATION, ConfirmationPurpose.REDIAGNOSE)
            return self._reply(session, f"Re-fetch the latest executions for `{session.automation_id}`?")

        if label == MENU_END:
            if not session.automation_id:
                session = self.store.reset(session.chat_id)
                return self._reply(session, "Nothing to end. Send an automation ID whenever you're ready.")
            session.transition(ConversationState.AWAITING_CONFIRMATION, ConfirmationPurpose.END_SESSION)
            return self._reply(session, "End this debugging session?")

        return self._on_free_text(session, label)

    def _on_confirmation(self, session: Session, message: ClassifiedInput) -> BotReply:
        if message.kind == InputKind.CONFIRM_NO:
            session.transition(ConversationState.CHATTING)
            return self._reply(session, "Okay. Ask me anything else about this automation.")

        if message.kind != InputKind.CONFIRM_YES:
            return self._reply(session, "Please answer *Yes* or *No*.")

        purpose = session.purpose
        if purpose == ConfirmationPurpose.REDIAGNOSE:
            return self._diagnose(session, session.automation_id)

        session = self.store.reset(session.chat_id)
        return self._reply(session, "👋 Session ended. Send an automation ID to debug another one.")

    def _on_free_text(self, session: Session, text: str) -> BotReply:
        if session.state == ConversationState.AWAITING_AUTOMATION_ID:
            return self._reply(
                session,
                "That doesn't look like an automation ID. It should be 20-30 lowercase letters "
                "and digits, or a pulseflow.co/automations/... link.",
            )

        if session.state == ConversationState.CHATTING and session.automation and session.diagnosis:
            return self._chat(session, text)

        return self._reply(session, "Send me an automation ID (or tap *Debug an automation*) to get started.")

    # ========================================
    # Actions
    # ========================================

    def _diagnose(self, session: Session, automation_id: Optional[str]) -> BotReply:
        messages = [f"🔍 Analyzing automation `{automation_id}`..."]
        automation = self.client.fetch_automation(automation_id) if automation_id else None

        if automation is None:
            session.transition(ConversationState.AWAITING_AUTOMATION_ID)
            messages.append(
                f"❌ Could not fetch automation `{automation_id}`\n\n"
                "Please verify:\n- The ID is correct\n- The automation exists\n\n"
                "Try again or contact support."
            )
            return self._reply(session, *messages)

        diagnosis = self.diagnoser.diagnose_latest(automation)
        messages.append(
            render_report(
                automation,
                diagnosis,
                recent_limit=self.settings.RECENT_EXECUTIONS_SHOWN,
                preview_chars=self.settings.INPUT_PREVIEW_CHARS,
            )
        )

        if self.llm is not None and diagnosis.has_execution:
            explanation = self.llm.explain(automation, diagnosis)
            if explanation:
                messages.append(f"🤖 *AI analysis*:\n{explanation}")

        session.automation_id = automation_id
        session.automation = automation
        session.diagnosis = diagnosis
        session.history = []
        session.transition(ConversationState.CHATTING)
        messages.append("💬 Ask me anything about this automation, or use the menu below.")
        return self._reply(session, *messages)

    def _chat(self, session: Session, text: str) -> BotReply:
        answer = None
        if self.llm is not None:
            answer = self.llm.answer(session.automation, session.diagnosis, text, session.history)

        if answer is None:
            return self._reply(
                session,
                render_issue_recap(session.diagnosis)
                + "\n\n_AI answers are unavailable right now; these are the rule-based findings._",
            )

        session.history.append({"role": "user", "content": text})
        session.history.append({"role": "assistant", "content": answer})
        max_messages = self.settings.MAX_HISTORY_TURNS * 2
        session.history = session.history[-max_messages:] if max_messages else []
        return self._reply(session, answer)

    @staticmethod
    def _reply(session: Session, *messages: str) -> BotReply:
        return BotReply(
            messages=list(messages),
            state=session.state,
            keyboard=KEYBOARDS[session.state],
        )
