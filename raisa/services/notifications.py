import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from raisa.database.models import Notification
from raisa.utils.helpers import utcnow

logger = logging.getLogger(__name__)

EVENTO_DESCRICAO_PRONTA = "descricao_pronta"
EVENTO_PRIORIDADE_PRONTA = "prioridade_pronta"
EVENTO_VAGA_REDISTRIBUIDA = "vaga_redistribuida"
EVENTO_REPRIORIZACAO = "repriorizacao"

PERFIL_GESTAO_RS = "Gestão de R&S"


class DatabaseNotifier:
    """
    Grava notificações na tabela ``notificacoes`` (lida pelo sino da UI).

    Usa uma sessão própria, aberta depois do commit da operação principal:
    falhas aqui são registradas em log e nunca desfazem a operação.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def notify(
        self,
        evento: str,
        titulo: str,
        mensagem: str = "",
        vaga_id: Optional[int] = None,
        destinatario_id: Optional[int] = None,
        perfil_destino: Optional[str] = None,
    ) -> None:
        db = self.session_factory()
        try:
            db.add(
                Notification(
                    evento=evento,
                    vaga_id=vaga_id,
                    destinatario_id=destinatario_id,
                    perfil_destino=perfil_destino,
                    titulo=titulo,
                    mensagem=mensagem,
                    criado_em=utcnow(),
                )
            )
            db.commit()
            logger.info(f"🔔 Notificação '{evento}' registrada (vaga={vaga_id})")
        except Exception as e:
            db.rollback()
            logger.warning(f"⚠️ Falha ao registrar notificação '{evento}' (vaga={vaga_id}): {e}")
        finally:
            db.close()


def safe_notify(notifier, evento: str, titulo: str, **kwargs) -> None:
    """Dispara e esquece: nenhum erro do notificador chega ao chamador."""
    if notifier is None:
        return
    try:
        notifier.notify(evento, titulo, **kwargs)
    except Exception as e:
        logger.warning(f"⚠️ Notificador falhou no evento '{evento}': {e}")
