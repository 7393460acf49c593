"""
Contratto comune per i client LLM.

Un prompt in ingresso, testo (o JSON) in uscita con i token consumati.
L'output strutturato ha un solo contratto: un oggetto JSON valido
oppure LLMError.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional
import json
import logging
import re

from core.exceptions import LLMError

logger = logging.getLogger(__name__)

# Blocco ```json ... ``` che racchiude l'intera risposta
CODE_FENCE_PATTERN = re.compile(r'^```[a-zA-Z]*\s*\n?(.*?)\n?```$', re.DOTALL)


@dataclass(frozen=True)
class LLMResponse:
    """Risposta testuale con i token consumati."""
    text: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


def parse_structured_output(text: Optional[str]) -> Dict[str, Any]:
    """
    Interpreta la risposta del modello come oggetto JSON.

    Accetta solo un oggetto JSON, eventualmente racchiuso per intero
    in un code fence. Testo libero attorno al JSON non viene "ripescato".

    Args:
        text: Risposta del modello

    Returns:
        Dizionario decodificato

    Raises:
        LLMError: se la risposta non è un oggetto JSON
    """
    if not text or not text.strip():
        raise LLMError("LLM returned an empty response")

    body = text.strip()
    fenced = CODE_FENCE_PATTERN.match(body)
    if fenced:
        body = fenced.group(1).strip()

    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise LLMError(f"LLM response is not valid JSON: {e.msg}") from e

    if not isinstance(data, dict):
        raise LLMError(f"LLM response is JSON but not an object: {type(data).__name__}")
    return data


class BaseLLMClient(ABC):
    """
    Classe base astratta per i client LLM.

    Le sottoclassi implementano complete(); l'output strutturato passa
    sempre da parse_structured_output().
    """

    def __init__(self, model_name: str):
        self.model_name = model_name

    @abstractmethod
    def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        json_mode: bool = False,
    ) -> LLMResponse:
        """
        Invia un prompt al modello.

        Args:
            prompt: Messaggio utente
            system: Messaggio di sistema opzionale
            json_mode: Se True richiede al modello un oggetto JSON

        Returns:
            LLMResponse

        Raises:
            LLMError: se la chiamata fallisce
        """
        pass
