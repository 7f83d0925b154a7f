"""
AI Assistant for Household Ledger

DESIGN DECISION: The assistant ("Fin") is a thin client over Gemini. It
produces text; the application decides what that text is allowed to do.

CRITICAL BOUNDARIES:

1. INSIGHT / SUGGESTION:
   - CAN: Summarize the data it is shown in a sentence or two
   - CANNOT: Change anything

2. CHAT:
   - CAN: Answer questions about the data it is shown
   - CAN: Ask for ONE transaction to be added, updated or deleted,
     by returning JSON constrained to ASSISTANT_RESPONSE_SCHEMA
   - CANNOT: Write to the backend itself. The orchestrator decodes the
     reply and performs the write, or refuses it.

The model is a TRANSLATOR between the couple's words and structured
actions. Everything it returns is treated as untrusted input.
"""

import json
from typing import Optional

import google.generativeai as genai

from household_ledger.config import GeminiSettings, get_settings
from household_ledger.models.assistant import ASSISTANT_RESPONSE_SCHEMA
from household_ledger.models.finance import (
    ALL_CATEGORIES,
    BOTH_PERSON,
    Budget,
    Goal,
    Transaction,
)


class AssistantError(Exception):
    """Base exception for AI assistant failures."""
    pass


class AssistantUnavailableError(AssistantError):
    """The model could not be reached or returned no usable text."""
    pass


def _to_json(rows: list) -> str:
    return json.dumps([row.to_row() for row in rows], ensure_ascii=False)


class FinanceAssistantAgent:
    """
    Gemini-backed assistant for a couple's finances.

    RESPONSIBILITIES:
    - One-sentence insight about a month's transactions
    - Short actionable suggestion towards the savings goals
    - Interpret chat messages into a structured reply

    BOUNDARIES:
    - NEVER persists data
    - NEVER retries: a failure is reported and the user asks again
    """

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    async def _generate(self, prompt: str, generation_config: Optional[dict] = None) -> str:
        try:
            if generation_config:
                response = await self._model.generate_content_async(
                    prompt,
                    generation_config=generation_config,
                )
            else:
                response = await self._model.generate_content_async(prompt)
            text = response.text.strip()
        except Exception as e:
            raise AssistantUnavailableError(f"Gemini request failed: {e}")

        if not text:
            raise AssistantUnavailableError("Gemini returned an empty response")
        return text

    async def generate_insight(
        self,
        transactions: list[Transaction],
        month_label: str,
    ) -> str:
        """
        One concise, useful insight about a month's transactions.

        Args:
            transactions: The month's transactions (already capped by the caller)
            month_label: e.g. "October 2026"
        """
        prompt = f"""Analyze the following financial transactions (income and expenses) of a couple for {month_label} and give one concise, useful insight in a single sentence.
Focus on trends, high spending or interesting patterns.
Amounts are in Brazilian reais (BRL).

Transactions: {_to_json(transactions)}"""

        return await self._generate(prompt)

    async def generate_suggestion(
        self,
        goals: list[Goal],
        transactions: list[Transaction],
    ) -> str:
        """A short, practical, actionable tip to reach the goals faster."""
        prompt = f"""Based on a couple's savings goals and their recent financial transactions (income and expenses), give a short, practical and actionable suggestion to help them reach their goals faster.
Amounts are in Brazilian reais (BRL).

Goals: {_to_json(goals)}
Latest transactions: {_to_json(transactions)}"""

        return await self._generate(prompt)

    async def interpret(
        self,
        message: str,
        transactions: list[Transaction],
        goals: list[Goal],
        budgets: list[Budget],
    ) -> str:
        """
        Interpret a chat message.

        Returns the raw model text. It is expected to be a JSON object
        matching ASSISTANT_RESPONSE_SCHEMA, but callers must decode it
        defensively.
        """
        prompt = f"""You are "Fin", a financial advisor for couples. Be consultative and helpful.

RULES:
1. Reply with ONE JSON object whose "action" is one of:
   - "answerQuery": put your reply to the user in "answer"
   - "addTransaction": the user asked to record a transaction; fill "transaction"
     with description, amount, flow ("income" or "expense"), category and person
   - "updateTransaction": the user asked to change a transaction; fill
     "transactionUpdate" with "identifier.description" (words from the existing
     description) and "updates" (only the fields to change)
   - "deleteTransaction": the user asked to remove a transaction; fill
     "transactionIdentifier.description"
2. Only use these categories: {", ".join(ALL_CATEGORIES)}
3. Person is a household member's name, or "{BOTH_PERSON}" for shared transactions.
4. FOCUS on giving insights about the data below. Never invent transactions.

DATA:
Transactions: {_to_json(transactions)}
Goals: {_to_json(goals)}
Budgets: {_to_json(budgets)}

USER MESSAGE: {json.dumps(message, ensure_ascii=False)}"""

        return await self._generate(
            prompt,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
                "response_schema": ASSISTANT_RESPONSE_SCHEMA,
            },
        )
