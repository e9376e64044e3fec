import logging
from typing import Optional

from openai import OpenAI

from raisa.config import settings

logger = logging.getLogger(__name__)


class OpenAIClient:
    """Colaborador de IA: reescreve a descrição da vaga para aprovação humana."""

    def __init__(self, model_id: str = None, client: Optional[OpenAI] = None):
        self.model_id = model_id or settings.OPENAI_MODEL
        self.client = client or OpenAI(api_key=settings.OPENAI_API_KEY)
        logger.info(f"✅ OpenAI Client inicializado (model={self.model_id})")

    def _chat(self, messages: list, temperature: float = 0.3, max_tokens: int = 900) -> str:
        try:
            resp = self.client.chat.completions.create(
                model=self.model_id,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens
            )
            return resp.choices[0].message.content.strip()
        except Exception as e:
            logger.error(f"❌ Erro na chamada OpenAI: {e}")
            raise

    def improve_description(self, descricao: str, contexto: dict) -> str:
        stack = ", ".join(contexto.get("stack_tecnologica") or []) or "não informada"
        prompt = f"""
Reescreva a descrição da vaga abaixo de forma clara e atrativa, em Markdown, com as seções:
## Sobre a Vaga
## Atividades
## Requisitos
## Diferenciais

Título: {contexto.get('titulo', '')}
Senioridade: {contexto.get('senioridade') or 'não informada'}
Stack: {stack}

Descrição original:
{descricao}
"""
        return self._chat([
            {"role": "system", "content": "Você é um especialista em R&S de tecnologia e escreve descrições de vagas objetivas."},
            {"role": "user", "content": prompt}
        ])


_client: Optional[OpenAIClient] = None


def get_ai_client() -> OpenAIClient:
    """Instância única, criada só quando o worker precisa dela."""
    global _client
    if _client is None:
        _client = OpenAIClient()
    return _client
