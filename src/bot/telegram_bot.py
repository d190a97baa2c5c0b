"""
Pulseflow Debug Bot - Telegram adapter
Created: 2026-01-15

Forwards every text message to ConversationManager and sends back the
reply with a keyboard for the new conversation state.

Usage:
    python -m src.bot.telegram_bot
"""

import asyncio
from typing import List, Optional

from loguru import logger
from telegram import ReplyKeyboardMarkup, Update
from telegram.constants import ParseMode
from telegram.error import BadRequest
from telegram.ext import Application, ContextTypes, MessageHandler, filters

from src.agents.llm_analyzer import LLMAnalyzer
from src.bot.conversation import ConversationManager
from src.clients.pulseflow_client import PulseflowClient
from src.config import get_settings
from src.diagnosis.diagnoser import ExecutionDiagnoser
from src.exceptions import MissingAPIKeyError
from src.utils.logging_setup import setup_logging

TELEGRAM_MESSAGE_LIMIT = 4096


def split_message(text: str, limit: int = TELEGRAM_MESSAGE_LIMIT) -> List[str]:
    """Split on line boundaries so each chunk fits one Telegram message"""
    if len(text) <= limit:
        return [text]

    chunks = []
    current = ""
    for line in text.split("\n"):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) > limit:
            chunks.append(current)
            current = line
        else:
            current = candidate
    if current:
        chunks.append(current)
    return chunks


async def send_markdown(update: Update, text: str, keyboard: Optional[List[List[str]]] = None) -> None:
    """Reply in Markdown; resend as plain text when Telegram rejects the entities"""
    markup = ReplyKeyboardMarkup(keyboard, resize_keyboard=True) if keyboard else None
    message = update.effective_message

    for chunk in split_message(text):
        try:
            await message.reply_text(chunk, parse_mode=ParseMode.MARKDOWN, reply_markup=markup)
        except BadRequest as e:
            if "parse entities" not in str(e).lower():
                raise
            # Raw error strings often contain unbalanced "_" or "*"
            logger.warning(f"[Bot] Markdown rejected, sending plain text: {e}")
            await message.reply_text(chunk, reply_markup=markup)


def build_application(manager: ConversationManager, token: str) -> Application:
    """Wire the conversation manager into a python-telegram-bot Application"""

    async def on_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if update.effective_chat is None or update.effective_message is None:
            return
        chat_id = update.effective_chat.id
        text = update.effective_message.text

        # Fetch + LLM calls are blocking; keep them off the event loop
        reply = await asyncio.to_thread(manager.handle, chat_id, text)

        for body in reply.messages:
            await send_markdown(update, body, reply.keyboard)

    async def on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
        logger.error(f"[Bot] Update handling failed: {context.error}")

    application = Application.builder().token(token).build()
    application.add_handler(MessageHandler(filters.TEXT, on_text))
    application.add_error_handler(on_error)
    return application


def main() -> None:
    setup_logging()
    settings = get_settings()

    if not settings.TELEGRAM_BOT_TOKEN:
        raise MissingAPIKeyError("TELEGRAM_BOT_TOKEN")

    llm = LLMAnalyzer(settings) if settings.llm_enabled else None
    if llm is None:
        logger.warning("[Bot] OPENAI_API_KEY not set; replies will be rule-based only")

    manager = ConversationManager(
        client=PulseflowClient(),
        diagnoser=ExecutionDiagnoser(),
        llm=llm,
        settings=settings,
    )

    logger.info("🤖 Pulseflow Debug Bot started...")
    build_application(manager, settings.TELEGRAM_BOT_TOKEN).run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()
