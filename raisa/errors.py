"""
Erros esperados do núcleo de priorização e distribuição.

Nenhum deles deve derrubar a aplicação: a camada HTTP converte cada tipo
em uma resposta (ver ``raisa.main``).
"""


class RaisaError(Exception):
    """Base de todos os erros tratados do núcleo."""

    kind = "erro"
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(RaisaError):
    """Entidade referenciada não existe (vaga, analista, cliente, prioridade)."""

    kind = "nao_encontrado"
    status_code = 404


class ValidationError(RaisaError):
    """Entrada malformada, ex.: motivo vazio. Nunca deve ser reenviada sem correção."""

    kind = "validacao"
    status_code = 422


class ConflictError(RaisaError):
    """Escrita concorrente detectada. O chamador deve recarregar e tentar de novo."""

    kind = "conflito"
    status_code = 409


class StateError(RaisaError):
    """Operação inválida para a etapa atual do workflow da vaga."""

    kind = "estado_invalido"
    status_code = 409
