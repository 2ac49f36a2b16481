from pathlib import Path
from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    database_url: str = f"sqlite:///{BASE_DIR / 'quizdrill.db'}"
    log_dir: Path = BASE_DIR / "data" / "logs"
    question_sets_dir: Path = BASE_DIR / "data" / "sets"

    default_session_count: int = 10
    max_session_count: int = 30
    max_results_per_submission: int = 20

    rate_limit_window_minutes: int = 15
    sign_in_max_attempts: int = 10
    register_max_attempts: int = 5

    demo_username: str = "QuizView"
    demo_password: str = "Teletubbie"
    bcrypt_rounds: int = 12

    model_config = {"env_file": [BASE_DIR / ".env"], "env_prefix": "QUIZDRILL_", "extra": "ignore"}


settings = Settings()
