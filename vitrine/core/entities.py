from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any
import uuid

from vitrine.core.exceptions import DadosInvalidosError

# ====================================================================
# ESTADOS
# ====================================================================

class EstadoTransacao:
    """Estados da transação reportados pelo provedor e gravados na intenção."""
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    DECLINED = 'DECLINED'
    VOIDED = 'VOIDED'
    ERROR = 'ERROR'

    TODOS = (PENDING, APPROVED, DECLINED, VOIDED, ERROR)
    TERMINAIS = (APPROVED, DECLINED, VOIDED, ERROR)
    REJEITADOS = (DECLINED, VOIDED, ERROR)


class EstadoPedido:
    PENDENTE = 'pendente'
    CONFIRMADA = 'confirmada'
    EM_PREPARACAO = 'em_preparacao'
    ENVIADA = 'enviada'
    ENTREGUE = 'entregue'
    CANCELADA = 'cancelada'

    TODOS = (PENDENTE, CONFIRMADA, EM_PREPARACAO, ENVIADA, ENTREGUE, CANCELADA)


# ====================================================================
# HELPERS DE DESSERIALIZAÇÃO
# ====================================================================

def _obrigatorio(dados: Dict[str, Any], campo: str, contexto: str):
    valor = dados.get(campo)
    if valor is None or valor == '':
        raise DadosInvalidosError(f"Campo obrigatório ausente em {contexto}: '{campo}'.")
    return valor


def _decimal(valor, campo: str) -> Decimal:
    try:
        return Decimal(str(valor)).quantize(Decimal('0.01'))
    except (InvalidOperation, TypeError, ValueError):
        raise DadosInvalidosError(f"Valor monetário inválido para '{campo}': {valor!r}.")


def _inteiro_positivo(valor, campo: str) -> int:
    try:
        numero = int(valor)
    except (TypeError, ValueError):
        raise DadosInvalidosError(f"Valor inteiro inválido para '{campo}': {valor!r}.")
    if numero <= 0 or str(numero) != str(valor).strip():
        raise DadosInvalidosError(f"'{campo}' deve ser um inteiro positivo, recebido {valor!r}.")
    return numero


def _opcional(dados: Dict[str, Any], campo: str) -> Optional[str]:
    valor = dados.get(campo)
    if valor is None:
        return None
    valor = str(valor).strip()
    return valor or None


def para_centavos(valor: Decimal) -> int:
    """Converte um valor em pesos para a unidade mínima (centavos) usada pelo provedor."""
    return int((Decimal(valor) * 100).quantize(Decimal('1')))


# ====================================================================
# SNAPSHOTS DA INTENÇÃO
# Estruturas explícitas, validadas ao desserializar, no lugar de blobs JSON.
# ====================================================================

@dataclass
class ItemSnapshot:
    """Linha do carrinho congelada no momento da criação da intenção."""
    produto_id: int
    nome: str
    quantidade: int
    preco_unitario: Decimal
    subtotal: Decimal

    @classmethod
    def from_dict(cls, dados: Dict[str, Any]) -> 'ItemSnapshot':
        if not isinstance(dados, dict):
            raise DadosInvalidosError("Item do snapshot do carrinho em formato inválido.")
        item = cls(
            produto_id=_inteiro_positivo(_obrigatorio(dados, 'produto_id', 'item'), 'produto_id'),
            nome=str(dados.get('nome') or ''),
            quantidade=_inteiro_positivo(_obrigatorio(dados, 'quantidade', 'item'), 'quantidade'),
            preco_unitario=_decimal(_obrigatorio(dados, 'preco_unitario', 'item'), 'preco_unitario'),
            subtotal=_decimal(_obrigatorio(dados, 'subtotal', 'item'), 'subtotal'),
        )
        if abs(item.preco_unitario * item.quantidade - item.subtotal) > Decimal('0.01'):
            raise DadosInvalidosError(f"Subtotal inconsistente para o produto {item.produto_id}.")
        return item

    def to_dict(self) -> Dict[str, Any]:
        return {
            'produto_id': self.produto_id,
            'nome': self.nome,
            'quantidade': self.quantidade,
            'preco_unitario': str(self.preco_unitario),
            'subtotal': str(self.subtotal),
        }


@dataclass
class SnapshotCarrinho:
    """Carrinho congelado: itens e valores que serão cobrados e gravados no pedido."""
    carrinho_id: int
    itens: List[ItemSnapshot]
    subtotal: Decimal
    custo_envio: Decimal
    total: Decimal
    desconto: Decimal = Decimal('0.00')
    impostos: Decimal = Decimal('0.00')
    moeda: str = 'COP'

    @property
    def valor_centavos(self) -> int:
        return para_centavos(self.total)

    def validar_totais(self):
        """Garante soma das linhas = subtotal e total = subtotal - desconto + envio + impostos."""
        soma_linhas = sum((item.subtotal for item in self.itens), Decimal('0.00'))
        if abs(soma_linhas - self.subtotal) > Decimal('0.01'):
            raise DadosInvalidosError(
                f"Soma das linhas ({soma_linhas}) difere do subtotal ({self.subtotal})."
            )
        esperado = self.subtotal - self.desconto + self.custo_envio + self.impostos
        if abs(esperado - self.total) > Decimal('0.01'):
            raise DadosInvalidosError(f"Total ({self.total}) difere do esperado ({esperado}).")

    @classmethod
    def from_dict(cls, dados: Dict[str, Any]) -> 'SnapshotCarrinho':
        if not isinstance(dados, dict):
            raise DadosInvalidosError("Snapshot do carrinho em formato inválido.")
        itens_brutos = dados.get('itens')
        if not isinstance(itens_brutos, list) or not itens_brutos:
            raise DadosInvalidosError("Snapshot do carrinho sem itens.")
        snapshot = cls(
            carrinho_id=_inteiro_positivo(_obrigatorio(dados, 'carrinho_id', 'carrinho'), 'carrinho_id'),
            itens=[ItemSnapshot.from_dict(item) for item in itens_brutos],
            subtotal=_decimal(_obrigatorio(dados, 'subtotal', 'carrinho'), 'subtotal'),
            custo_envio=_decimal(dados.get('custo_envio', '0'), 'custo_envio'),
            total=_decimal(_obrigatorio(dados, 'total', 'carrinho'), 'total'),
            desconto=_decimal(dados.get('desconto', '0'), 'desconto'),
            impostos=_decimal(dados.get('impostos', '0'), 'impostos'),
            moeda=str(dados.get('moeda') or 'COP'),
        )
        snapshot.validar_totais()
        return snapshot

    def to_dict(self) -> Dict[str, Any]:
        return {
            'carrinho_id': self.carrinho_id,
            'itens': [item.to_dict() for item in self.itens],
            'subtotal': str(self.subtotal),
            'desconto': str(self.desconto),
            'custo_envio': str(self.custo_envio),
            'impostos': str(self.impostos),
            'total': str(self.total),
            'moeda': self.moeda,
        }


@dataclass
class SnapshotComprador:
    """Dados do comprador enviados ao checkout hospedado."""
    usuario_id: int
    email: str
    nome_completo: str
    telefone: Optional[str] = None
    prefixo_telefone: Optional[str] = None
    tipo_documento: Optional[str] = None
    numero_documento: Optional[str] = None

    @classmethod
    def from_dict(cls, dados: Dict[str, Any]) -> 'SnapshotComprador':
        if not isinstance(dados, dict):
            raise DadosInvalidosError("Snapshot do comprador em formato inválido.")
        return cls(
            usuario_id=_inteiro_positivo(_obrigatorio(dados, 'usuario_id', 'comprador'), 'usuario_id'),
            email=str(_obrigatorio(dados, 'email', 'comprador')),
            nome_completo=str(dados.get('nome_completo') or '').strip(),
            telefone=_opcional(dados, 'telefone'),
            prefixo_telefone=_opcional(dados, 'prefixo_telefone'),
            tipo_documento=_opcional(dados, 'tipo_documento'),
            numero_documento=_opcional(dados, 'numero_documento'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'usuario_id': self.usuario_id,
            'email': self.email,
            'nome_completo': self.nome_completo,
            'telefone': self.telefone,
            'prefixo_telefone': self.prefixo_telefone,
            'tipo_documento': self.tipo_documento,
            'numero_documento': self.numero_documento,
        }


@dataclass
class SnapshotEnvio:
    """
    Endereço de entrega congelado. Todos os campos são opcionais na
    desserialização; a completude é decidida por quem monta a URL.
    """
    endereco_id: Optional[int] = None
    endereco: Optional[str] = None
    cidade: Optional[str] = None
    departamento: Optional[str] = None
    pais: Optional[str] = None
    telefone: Optional[str] = None
    nome_destinatario: Optional[str] = None
    codigo_postal: Optional[str] = None
    complemento: Optional[str] = None

    @property
    def completo(self) -> bool:
        return all([self.endereco, self.pais, self.cidade, self.telefone, self.departamento])

    @classmethod
    def from_dict(cls, dados: Optional[Dict[str, Any]]) -> Optional['SnapshotEnvio']:
        if dados is None:
            return None
        if not isinstance(dados, dict):
            raise DadosInvalidosError("Snapshot de envio em formato inválido.")
        endereco_id = dados.get('endereco_id')
        return cls(
            endereco_id=_inteiro_positivo(endereco_id, 'endereco_id') if endereco_id is not None else None,
            endereco=_opcional(dados, 'endereco'),
            cidade=_opcional(dados, 'cidade'),
            departamento=_opcional(dados, 'departamento'),
            pais=_opcional(dados, 'pais'),
            telefone=_opcional(dados, 'telefone'),
            nome_destinatario=_opcional(dados, 'nome_destinatario'),
            codigo_postal=_opcional(dados, 'codigo_postal'),
            complemento=_opcional(dados, 'complemento'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'endereco_id': self.endereco_id,
            'endereco': self.endereco,
            'cidade': self.cidade,
            'departamento': self.departamento,
            'pais': self.pais,
            'telefone': self.telefone,
            'nome_destinatario': self.nome_destinatario,
            'codigo_postal': self.codigo_postal,
            'complemento': self.complemento,
        }


# ====================================================================
# ENTIDADES CORE
# Representam os objetos de negócio puros.
# ====================================================================

@dataclass
class IntencaoCheckout:
    """Registro de preparação de uma tentativa de pagamento, anterior a qualquer pedido."""
    referencia: str
    usuario_id: int
    carrinho_id: int
    metodo_pagamento: str
    dados_carrinho: SnapshotCarrinho
    dados_comprador: SnapshotComprador
    expira_em: datetime
    dados_envio: Optional[SnapshotEnvio] = None
    endereco_envio_id: Optional[int] = None
    notas: str = ''
    estado: str = EstadoTransacao.PENDING
    id_transacao_provedor: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    criado_em: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    atualizado_em: Optional[datetime] = None

    @property
    def pendente(self) -> bool:
        return self.estado == EstadoTransacao.PENDING

    def esta_expirada(self, agora: Optional[datetime] = None) -> bool:
        agora = agora or datetime.now(timezone.utc)
        return self.expira_em <= agora

    def segundos_restantes(self, agora: Optional[datetime] = None) -> int:
        agora = agora or datetime.now(timezone.utc)
        return max(0, int((self.expira_em - agora).total_seconds()))


@dataclass
class ItemCarrinho:
    produto_id: int
    nome: str
    quantidade: int
    preco_unitario: Decimal

    @property
    def subtotal(self) -> Decimal:
        return self.preco_unitario * self.quantidade


@dataclass
class Carrinho:
    """Carrinho ativo do comprador, como fornecido pelo serviço de carrinho."""
    id: int
    usuario_id: int
    itens: List[ItemCarrinho] = field(default_factory=list)
    ativo: bool = True

    @property
    def subtotal(self) -> Decimal:
        return sum((item.subtotal for item in self.itens), Decimal('0.00'))


@dataclass
class ValidacaoCarrinho:
    valido: bool
    erros: List[str] = field(default_factory=list)


@dataclass
class ItemPedido:
    """Item do pedido com o preço copiado do snapshot da intenção."""
    produto_id: int
    quantidade: int
    preco_unitario: Decimal
    subtotal: Decimal
    nome_produto: str = ''
    id: Optional[int] = None


@dataclass
class Pedido:
    """Entidade do Pedido, fonte autoritativa do que foi vendido."""
    numero_pedido: str
    usuario_id: int
    estado: str
    subtotal: Decimal
    desconto: Decimal
    custo_envio: Decimal
    impostos: Decimal
    total: Decimal
    metodo_pagamento: str
    referencia_pagamento: str
    itens: List[ItemPedido] = field(default_factory=list)
    endereco_envio_id: Optional[int] = None
    notas: str = ''
    motivo_cancelamento: Optional[str] = None
    id: Optional[int] = None
    criado_em: Optional[datetime] = None
    atualizado_em: Optional[datetime] = None


@dataclass
class TransacaoPagamento:
    """
    Estado de uma transação segundo o provedor, seja vinda de um webhook
    normalizado ou de uma consulta ativa.
    """
    referencia: str
    status: str
    id_transacao_provedor: Optional[str] = None
    valor_centavos: Optional[int] = None
    moeda: Optional[str] = None
    metodo_pagamento: Optional[str] = None
    mensagem: Optional[str] = None
    evento: Optional[str] = None


@dataclass
class NotificacaoPedido:
    """Mensagem emitida para o serviço de notificações quando um pedido muda de estado."""
    usuario_id: int
    pedido_id: int
    numero_pedido: str
    novo_estado: str


@dataclass
class ResultadoLiquidacao:
    intencao: IntencaoCheckout
    estado: str
    pedido: Optional[Pedido] = None
    mudou_estado: bool = False


@dataclass
class ResumoReconciliacao:
    verificadas: int = 0
    aprovadas: int = 0
    rejeitadas: int = 0
    expiradas: int = 0
    pendentes: int = 0
    erros: int = 0
    ignorada: bool = False
