"""
Primitivas de pontuação da priorização de vagas.

Todas são funções puras e totais: devolvem um inteiro em [0, 100] e nunca
levantam exceção. Entradas ausentes ou inválidas caem no valor neutro (50).

    urgencia_prazo      urgency_score(tem_prazo, dias_ate_prazo, urgente)
    valor_faturamento   billing_score(faturamento_mensal)
    cliente_vip         vip_boost(vip)              -> +20 somado, não ponderado
    tempo_aberto        time_open_score(dias_aberta)
    complexidade_stack  stack_complexity_score(stack, senioridade)
"""
import math
from typing import Iterable, Optional

from raisa.utils.helpers import normalize_stack

NEUTRAL_SCORE = 50
MIN_SCORE = 0
MAX_SCORE = 100

# ------------------------------------------------------------
# Urgência do prazo
# ------------------------------------------------------------
URGENT_BASE_SCORE = 90
URGENCY_FLOOR = 20
# (dias até o prazo, score): o primeiro limite que comporta o valor vence
URGENCY_STEPS = (
    (0, 100),    # prazo vencido ou vence hoje
    (7, 90),
    (15, 75),
    (30, 55),
    (60, 35),
)

# ------------------------------------------------------------
# Faturamento mensal estimado (R$)
# ------------------------------------------------------------
BILLING_TIERS = (
    (5_000, 20),
    (10_000, 40),
    (20_000, 60),
    (40_000, 80),
)
BILLING_TOP_SCORE = 100

# ------------------------------------------------------------
# Cliente VIP
# ------------------------------------------------------------
VIP_BONUS = 20

# ------------------------------------------------------------
# Tempo em aberto
# ------------------------------------------------------------
TIME_OPEN_STEPS = (
    (7, 10),
    (15, 30),
    (30, 60),
    (45, 80),
)
TIME_OPEN_TOP_SCORE = 100

# ------------------------------------------------------------
# Complexidade da stack
# ------------------------------------------------------------
SENIORITY_BASE = {
    "Junior": 20,
    "Pleno": 40,
    "Senior": 60,
    "Especialista": 80,
}
STACK_FREE_ITEMS = 3
STACK_POINTS_PER_EXTRA_ITEM = 5


def clamp(value: float, low: int = MIN_SCORE, high: int = MAX_SCORE) -> int:
    """Arredonda e limita a [low, high]; NaN vira o valor neutro."""
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return NEUTRAL_SCORE
    return int(max(low, min(high, round(value))))


def _as_number(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def urgency_score(has_deadline: bool, days_until_deadline, is_marked_urgent: bool) -> int:
    """
    Urgência do prazo. Vaga marcada como urgente parte de 90; sem marcação,
    o score cai em degraus conforme o prazo se afasta (mínimo 20).
    Sem prazo e sem marcação: neutro.
    """
    days = _as_number(days_until_deadline) if has_deadline else None

    step = None
    if days is not None:
        step = URGENCY_FLOOR
        for limit, score in URGENCY_STEPS:
            if days <= limit:
                step = score
                break

    if is_marked_urgent:
        return clamp(max(URGENT_BASE_SCORE, step or 0))
    if step is None:
        return NEUTRAL_SCORE
    return clamp(step)


def billing_score(monthly_billing_estimate) -> int:
    """Degraus crescentes por faixa de faturamento; saturado em 100."""
    value = _as_number(monthly_billing_estimate)
    if value is None:
        return NEUTRAL_SCORE
    for limit, score in BILLING_TIERS:
        if value < limit:
            return score
    return BILLING_TOP_SCORE


def vip_boost(vip) -> int:
    return VIP_BONUS if vip is True else 0


def time_open_score(days_open) -> int:
    """Crescente com os dias em aberto; o valor bruto é exibido à parte."""
    days = _as_number(days_open)
    if days is None:
        return NEUTRAL_SCORE
    for limit, score in TIME_OPEN_STEPS:
        if days <= limit:
            return score
    return TIME_OPEN_TOP_SCORE


def stack_complexity_score(stack_list: Optional[Iterable[str]], seniority) -> int:
    """
    Heurística de dificuldade de preenchimento: base pela senioridade e
    +5 por tecnologia além das três primeiras.
    """
    items = normalize_stack(stack_list)
    level = getattr(seniority, "value", seniority)
    base = SENIORITY_BASE.get(level) if isinstance(level, str) else None

    if base is None and not items:
        return NEUTRAL_SCORE
    if base is None:
        base = NEUTRAL_SCORE

    extra = max(0, len(items) - STACK_FREE_ITEMS)
    return clamp(base + extra * STACK_POINTS_PER_EXTRA_ITEM)
