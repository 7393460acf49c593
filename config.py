"""
Configurazione globale per il Ricercatore di Mercato.
"""
from dataclasses import dataclass, field
from typing import Dict, List
import os
from dotenv import load_dotenv

load_dotenv()

# Valori segnaposto che non sono chiavi valide
PLACEHOLDER_API_KEYS = ("", "your_serper_api_key", "changeme")


@dataclass
class SearchConfig:
    """Configurazione per il client di ricerca (Serper)."""
    api_key: str = field(default_factory=lambda: os.getenv("SERPER_API_KEY", ""))
    base_url: str = "https://google.serper.dev/search"
    timeout: float = float(os.getenv("SERPER_TIMEOUT", "10"))
    cache_ttl: int = int(os.getenv("SERPER_CACHE_TTL", "300"))
    cache_max_entries: int = int(os.getenv("SEARCH_CACHE_MAX_ENTRIES", "1000"))
    max_retries: int = int(os.getenv("SERPER_MAX_RETRIES", "3"))
    retry_base_delay: float = 1.0
    retry_max_delay: float = 10.0
    # 100 richieste per finestra di 60s
    rate_limit: int = int(os.getenv("SERPER_RATE_LIMIT", "100"))
    rate_window: float = float(os.getenv("SERPER_RATE_WINDOW", "60"))


@dataclass
class LLMConfig:
    """Configurazione per il modello linguistico."""
    api_key: str = field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""))
    model: str = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    temperature: float = float(os.getenv("OPENAI_TEMPERATURE", "0.3"))
    max_tokens: int = int(os.getenv("OPENAI_MAX_TOKENS", "1500"))
    timeout: float = float(os.getenv("OPENAI_TIMEOUT", "60"))

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


@dataclass
class MarketProfile:
    """
    Profilo del mercato domestico.

    Definisce parametri di ricerca, domini e script usati per
    distinguere le fonti domestiche da quelle globali.
    """
    name: str
    geo_code: str
    lang_code: str
    domain_suffixes: List[str]
    script_pattern: str
    query_templates: Dict[str, str]


@dataclass
class AppConfig:
    """Configurazione globale applicazione."""

    # Generale
    app_name: str = "Ricercatore di Mercato"
    version: str = "1.0.0"
    debug: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_to_file: bool = os.getenv("LOG_TO_FILE", "false").lower() == "true"

    search: SearchConfig = field(default_factory=SearchConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)

    # Fan-out
    max_workers: int = int(os.getenv("RESEARCH_MAX_WORKERS", "8"))
    result_count: int = int(os.getenv("RESEARCH_RESULT_COUNT", "10"))

    # Soglie di performance per i warning di fine esecuzione
    max_execution_ms: int = 30000
    max_total_tokens: int = 20000
    min_cache_hit_rate: float = 30.0


# Mercato domestico: Giappone
JAPAN_PROFILE = MarketProfile(
    name="Giappone",
    geo_code="jp",
    lang_code="ja",
    domain_suffixes=[".jp", ".co.jp", ".ne.jp", ".or.jp"],
    # Hiragana, Katakana, Kanji
    script_pattern=r"[\u3040-\u309F\u30A0-\u30FF\u4E00-\u9FAF]",
    query_templates={
        "market_size": "{theme} 市場規模 日本",
        "competitors": "{theme} 企業 ランキング 日本",
        "trends": "{theme} 最新 トレンド",
        "regulations": "{theme} 規制 法律 日本",
        "needs": "{theme} 課題 ニーズ",
    },
)

# Parametri per le ricerche sui casi esteri
GLOBAL_GEO_CODE: str = "us"
GLOBAL_LANG_CODE: str = "en"
GLOBAL_QUERY_TEMPLATES: Dict[str, str] = {
    "startups": "{theme} startup unicorn funding",
    "technology": "{theme} innovation technology trends",
    "best_practices": "{theme} best practices global",
}

# Scopi delle query, nell'ordine in cui vengono pianificate
DOMESTIC_PURPOSES: List[str] = ["market_size", "competitors", "trends", "regulations", "needs"]
GLOBAL_PURPOSES: List[str] = ["startups", "technology", "best_practices"]

THEME_MAX_LENGTH: int = 500

# Istanza configurazione globale
config = AppConfig()
