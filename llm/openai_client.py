"""
Client per l'API chat completions di OpenAI.

Adatta l'SDK openai al contratto di BaseLLMClient: messaggi system/user,
modalità JSON opzionale ed estrazione dei token consumati.
"""
from typing import Optional
import logging

import openai

from config import LLMConfig
from core.exceptions import ConfigurationError, LLMError
from llm.base import BaseLLMClient, LLMResponse

logger = logging.getLogger(__name__)


class OpenAIChatClient(BaseLLMClient):
    """
    Client per le chat completions di OpenAI.

    Gli errori dell'SDK diventano LLMError, così l'orchestratore
    può ripiegare sul fallback senza conoscere il provider.
    """

    def __init__(self, settings: Optional[LLMConfig] = None, client: Optional[openai.OpenAI] = None):
        """
        Inizializza il client.

        Args:
            settings: Configurazione LLM (default: variabili d'ambiente)
            client: Istanza openai.OpenAI già pronta (usata nei test)

        Raises:
            ConfigurationError: Se manca la chiave API e non è passato un client
        """
        settings = settings or LLMConfig()
        super().__init__(settings.model)
        self.temperature = settings.temperature
        self.max_tokens = settings.max_tokens

        if client is None:
            if not settings.api_key:
                raise ConfigurationError("OPENAI_API_KEY not found in environment variables")
            client = openai.OpenAI(api_key=settings.api_key, timeout=settings.timeout)
        self.client = client

    def complete(self, prompt: str, system: Optional[str] = None, json_mode: bool = False) -> LLMResponse:
        """
        Invia il prompt e restituisce il testo della prima scelta.

        Args:
            prompt: Messaggio dell'utente
            system: Istruzioni di sistema opzionali
            json_mode: Richiede al modello un oggetto JSON

        Returns:
            LLMResponse con testo e token

        Raises:
            LLMError: Per errori dell'SDK o risposta senza scelte
        """
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        kwargs = {
            "model": self.model_name,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            response = self.client.chat.completions.create(**kwargs)
        except openai.OpenAIError as e:
            raise LLMError(f"OpenAI request failed: {e}") from e

        if not response.choices:
            raise LLMError("OpenAI returned no choices")

        # Alcuni proxy compatibili omettono usage o total_tokens
        usage = getattr(response, "usage", None)
        prompt_tokens = getattr(usage, "prompt_tokens", 0) or 0
        completion_tokens = getattr(usage, "completion_tokens", 0) or 0
        total_tokens = getattr(usage, "total_tokens", 0) or (prompt_tokens + completion_tokens)

        text = response.choices[0].message.content or ""
        logger.debug(f"OpenAI {self.model_name}: {total_tokens} tokens")
        return LLMResponse(
            text=text,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=total_tokens,
        )
