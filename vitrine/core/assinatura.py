# vitrine/core/assinatura.py
"""
Motor de Assinaturas (Integridade).

Calcula a assinatura de integridade enviada no redirecionamento ao checkout
hospedado e verifica o checksum dos eventos recebidos por webhook. As duas
operações usam SHA-256 sobre uma concatenação de campos em ordem fixa,
terminada pelo segredo compartilhado.
"""
import hashlib
import hmac
import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from vitrine.core.exceptions import ConfiguracaoInvalidaError, DadosInvalidosError

logger = logging.getLogger(__name__)

CABECALHO_CHECKSUM = 'X-Event-Checksum'


def _exigir_segredo(segredo: Optional[str]) -> str:
    if not segredo or not str(segredo).strip():
        raise ConfiguracaoInvalidaError("Segredo de integridade não configurado; assinatura recusada.")
    return str(segredo)


def _sha256(texto: str) -> str:
    return hashlib.sha256(texto.encode('utf-8')).hexdigest()


def assinar(
    referencia: str,
    valor_centavos: int,
    moeda: str,
    segredo: str,
    expiracao: Optional[str] = None
) -> str:
    """
    Gera a assinatura de integridade:
    sha256(referencia + valor_centavos + moeda + [expiracao] + segredo).

    O valor precisa ser exatamente o mesmo inteiro enviado em `amount-in-cents`,
    caso contrário o provedor rejeita a assinatura.
    """
    segredo = _exigir_segredo(segredo)
    if isinstance(valor_centavos, bool) or not isinstance(valor_centavos, int):
        raise DadosInvalidosError(f"O valor em centavos deve ser inteiro, recebido {valor_centavos!r}.")
    if not referencia:
        raise DadosInvalidosError("Referência vazia não pode ser assinada.")
    if not moeda:
        raise DadosInvalidosError("Moeda vazia não pode ser assinada.")

    partes = [referencia, str(valor_centavos), moeda]
    if expiracao:
        partes.append(expiracao)
    partes.append(segredo)
    return _sha256(''.join(partes))


def _resolver_propriedade(dados: Mapping[str, Any], caminho: str):
    """Resolve caminhos como 'transaction.amount_in_cents' dentro de payload['data']."""
    atual: Any = dados
    for parte in caminho.split('.'):
        if not isinstance(atual, Mapping) or parte not in atual:
            return None
        atual = atual[parte]
    if isinstance(atual, (dict, list)):
        return None
    return atual


def calcular_checksum_evento(
    payload: Dict[str, Any],
    propriedades: Iterable[str],
    segredo: str
) -> Optional[str]:
    """
    Reconstrói o checksum de um evento. Retorna None quando alguma
    propriedade referenciada ou o timestamp não existem no payload.
    """
    segredo = _exigir_segredo(segredo)
    propriedades = list(propriedades or [])
    if not propriedades:
        return None

    dados = payload.get('data') if isinstance(payload, Mapping) else None
    if not isinstance(dados, Mapping):
        return None

    valores = []
    for caminho in propriedades:
        valor = _resolver_propriedade(dados, caminho)
        if valor is None:
            return None
        valores.append(str(valor))

    timestamp = payload.get('timestamp')
    if timestamp is None or timestamp == '':
        return None
    valores.append(str(timestamp))
    valores.append(segredo)
    return _sha256(''.join(valores))


def verificar_webhook(
    payload: Dict[str, Any],
    assinatura_fornecida: Optional[str],
    propriedades: Optional[Iterable[str]],
    segredo: Optional[str]
) -> bool:
    """
    Verifica o checksum de um evento em tempo constante.
    Falha fechada: segredo ausente, propriedade ausente ou divergência retornam False.
    """
    if not assinatura_fornecida:
        return False
    try:
        esperado = calcular_checksum_evento(payload, propriedades, segredo)
    except ConfiguracaoInvalidaError:
        logger.error("Segredo de eventos ausente: todos os webhooks serão rejeitados.")
        return False
    if esperado is None:
        return False
    fornecida = str(assinatura_fornecida).strip().lower()
    if not fornecida.isascii():
        return False
    return hmac.compare_digest(esperado, fornecida)


def extrair_assinatura(payload: Dict[str, Any], cabecalhos: Mapping[str, str]) -> Optional[str]:
    """O cabeçalho X-Event-Checksum tem precedência sobre signature.checksum do corpo."""
    do_cabecalho = cabecalhos.get(CABECALHO_CHECKSUM) if cabecalhos else None
    if do_cabecalho:
        return do_cabecalho
    assinatura = payload.get('signature') if isinstance(payload, Mapping) else None
    if isinstance(assinatura, Mapping):
        return assinatura.get('checksum') or None
    return None


def propriedades_assinadas(payload: Dict[str, Any]):
    assinatura = payload.get('signature') if isinstance(payload, Mapping) else None
    if isinstance(assinatura, Mapping) and isinstance(assinatura.get('properties'), list):
        return assinatura['properties']
    return []
