# config.py
import os

from dotenv import load_dotenv

# Load local .env (on Render, env vars are injected automatically)
load_dotenv()


class Config:
    # --- Storage ---
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///drift_journal.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # --- OpenRouter ---
    OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY")
    OPENROUTER_MODEL = os.getenv(
        "OPENROUTER_MODEL",
        "meta-llama/llama-3.1-8b-instruct:free",
    )
    OPENROUTER_URL = os.getenv(
        "OPENROUTER_URL",
        "https://openrouter.ai/api/v1/chat/completions",
    )
    PUBLIC_APP_URL = os.getenv("PUBLIC_APP_URL", "")  # e.g. your Netlify site URL
    LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "30"))

    # --- Misc ---
    FRONTEND_ORIGIN = os.getenv("FRONTEND_ORIGIN")
    EXPORT_DIR = os.getenv("EXPORT_DIR", "exports")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
