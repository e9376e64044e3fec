import os
from dotenv import load_dotenv
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

# Carrega o arquivo .env da raiz do projeto
load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), "..", ".env"))


class Settings(BaseSettings):
    SUPABASE_DB_URL: str = Field(
        default="sqlite:///./raisa.db",
        description="Connection string do banco (PostgreSQL do Supabase em produção)"
    )

    # ========== OPENAI ==========
    OPENAI_API_KEY: str = Field(
        default="",
        description="Chave de API da OpenAI (sk-...) usada na melhoria de descrições"
    )
    OPENAI_MODEL: str = Field(
        default="gpt-4o-mini",
        description="Modelo OpenAI a ser usado (gpt-4o-mini, gpt-4, etc)"
    )

    # ========== REDIS (Filas Assíncronas) ==========
    REDIS_URL: str = Field(
        default="redis://localhost:6379",
        description="URL de conexão do Redis para RQ worker"
    )

    # ========== DISTRIBUIÇÃO ==========
    CAPACIDADE_MAXIMA_DEFAULT: int = Field(
        default=7,
        ge=1,
        description="Capacidade máxima de vagas simultâneas quando o analista não tem ajuste"
    )
    REPRIORIZACAO_INTERVALO_HORAS: int = Field(
        default=4,
        ge=1,
        description="Intervalo entre execuções da repriorização dinâmica"
    )
    IMPACTO_JANELA_DIAS: int = Field(
        default=30,
        ge=1,
        description="Janela (dias) antes/depois de um ajuste usada para medir impacto"
    )
    IMPACTO_MIN_AMOSTRAS: int = Field(
        default=3,
        ge=1,
        description="Mínimo de vagas fechadas após o ajuste para classificar o impacto"
    )

    # ========== APP ==========
    APP_ENV: str = Field(
        default="development",
        description="Ambiente de execução (development/production/staging)"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Nível de log da aplicação (DEBUG/INFO/WARNING/ERROR/CRITICAL)"
    )

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore",
        "env_file_encoding": "utf-8"
    }


def load_settings() -> Settings:
    """
    Carrega e valida as configurações do sistema.

    Raises:
        SystemExit: Se houver variáveis com valores inválidos

    Returns:
        Settings: Instância validada das configurações
    """
    try:
        return Settings()

    except ValidationError as e:
        missing_vars = []
        invalid_vars = []

        for error in e.errors():
            field_name = error["loc"][0]
            if error["type"] == "missing":
                missing_vars.append(field_name)
            else:
                invalid_vars.append(f"{field_name} ({error['msg']})")

        print("\n" + "=" * 60)
        print("❌ ERRO: Configurações Inválidas no .env")
        print("=" * 60)

        if missing_vars:
            print("\n🔴 Variáveis OBRIGATÓRIAS ausentes:")
            for var in missing_vars:
                print(f"   - {var}")

        if invalid_vars:
            print("\n🟡 Variáveis com valores INVÁLIDOS:")
            for var in invalid_vars:
                print(f"   - {var}")

        print("\n⚠️  Corrija o arquivo .env e reinicie o servidor.")
        print("=" * 60 + "\n")

        raise SystemExit(1)


def _mask(value: str, head: int = 10, tail: int = 5) -> str:
    if not value:
        return "[não configurado]"
    if len(value) <= head + tail:
        return "***"
    return f"{value[:head]}...{value[-tail:]}"


def describe_settings(cfg: Settings) -> None:
    """Imprime um resumo das configurações sem expor credenciais."""
    print("\n" + "=" * 60)
    print("✅ Configurações carregadas com sucesso!")
    print("=" * 60)
    print(f"\n📋 Ambiente: {cfg.APP_ENV}")
    print(f"📊 Log Level: {cfg.LOG_LEVEL}")
    print(f"🤖 Modelo OpenAI: {cfg.OPENAI_MODEL}")
    print(f"🔑 OpenAI Key: {_mask(cfg.OPENAI_API_KEY)}")

    # Extrai host do banco de dados sem expor senha
    db_parts = cfg.SUPABASE_DB_URL.split("@")
    print(f"🗄️  Database: {db_parts[-1] if len(db_parts) > 1 else cfg.SUPABASE_DB_URL}")
    print(f"📦 Redis: {cfg.REDIS_URL}")
    print(f"👥 Capacidade padrão por analista: {cfg.CAPACIDADE_MAXIMA_DEFAULT} vagas")
    print("=" * 60 + "\n")


# ========================================
# 🌐 INSTÂNCIA SINGLETON
# ========================================

settings = load_settings()
