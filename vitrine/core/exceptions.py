class BaseErroCore(Exception):
    """Classe base para todas as exceções da Camada Core."""
    pass

# ===============================================
# ERROS DE CONFIGURAÇÃO E VALIDAÇÃO
# ===============================================

class ConfiguracaoInvalidaError(BaseErroCore):
    """Erro levantado quando chaves, segredos ou URLs do provedor estão ausentes ou inválidos."""
    def __init__(self, message="A configuração de pagamentos está incompleta ou inválida."):
        self.message = message
        super().__init__(self.message)

class DadosInvalidosError(BaseErroCore):
    """Erro levantado quando dados inválidos são fornecidos."""
    def __init__(self, message="Os dados fornecidos são inválidos."):
        self.message = message
        super().__init__(self.message)

class CarrinhoVazioError(DadosInvalidosError):
    """Erro levantado ao tentar fazer checkout com carrinho vazio."""
    def __init__(self, message="O carrinho de compras está vazio."):
        super().__init__(message)

class EventoInvalidoError(DadosInvalidosError):
    """Evento de webhook sem referência, sem status ou com status desconhecido."""
    def __init__(self, message="O evento de pagamento recebido é inválido."):
        super().__init__(message)

class AssinaturaInvalidaError(BaseErroCore):
    """A assinatura do evento não confere com o segredo de eventos."""
    def __init__(self, message="Assinatura do evento inválida."):
        self.message = message
        super().__init__(self.message)

# ===============================================
# ERROS DE PERSISTÊNCIA E ENTIDADE
# ===============================================

class ItemNaoEncontradoError(BaseErroCore):
    """Erro levantado quando um item (genérico) não é encontrado."""
    def __init__(self, message="O item solicitado não foi encontrado."):
        self.message = message
        super().__init__(self.message)

class PedidoNaoEncontradoError(ItemNaoEncontradoError):
    """Erro específico para Pedidos não encontrados."""
    pass

class IntencaoNaoEncontradaError(ItemNaoEncontradoError):
    """Erro específico para Intenções de Checkout não encontradas."""
    pass

class EnderecoInvalidoError(DadosInvalidosError):
    """Erro levantado quando um endereço de entrega é inválido ou não pertence ao usuário."""
    pass

class TransicaoPedidoInvalidaError(BaseErroCore):
    """O pedido não está em um estado que permita a operação solicitada."""
    def __init__(self, message="A operação não é permitida no estado atual do pedido."):
        self.message = message
        super().__init__(self.message)

# ===============================================
# ERROS DE LIQUIDAÇÃO
# ===============================================

class IntencaoNaoAprovadaError(BaseErroCore):
    """Confirmação tentada sobre uma intenção que não está APPROVED."""
    def __init__(self, message="A intenção de checkout não está aprovada."):
        self.message = message
        super().__init__(self.message)

class LiquidacaoDuplicadaError(BaseErroCore):
    """Já existe um pedido para a referência de pagamento. Resolvido internamente pelo coordenador."""
    def __init__(self, referencia: str, message=None):
        self.referencia = referencia
        self.message = message or f"Já existe um pedido para a referência {referencia}."
        super().__init__(self.message)

class ConflitoEstoqueError(BaseErroCore):
    """Estoque ou preço do produto divergem do snapshot no momento da confirmação."""
    def __init__(self, message="Conflito de estoque ou preço ao confirmar o pedido."):
        self.message = message
        super().__init__(self.message)

class EstoqueInsuficienteError(ConflitoEstoqueError):
    """Erro levantado quando a quantidade solicitada excede o estoque."""
    def __init__(self, produto_id, estoque_atual: int, quantidade_solicitada: int, message=None):
        self.produto_id = produto_id
        self.estoque_atual = estoque_atual
        self.quantidade_solicitada = quantidade_solicitada
        if message is None:
            message = (f"Estoque insuficiente para o Produto {produto_id}. "
                       f"Disponível: {estoque_atual}, Solicitado: {quantidade_solicitada}.")
        super().__init__(message)

class PrecoAlteradoError(ConflitoEstoqueError):
    """O preço vigente do produto não corresponde ao preço congelado na intenção."""
    def __init__(self, produto_id, preco_snapshot, preco_atual, message=None):
        self.produto_id = produto_id
        self.preco_snapshot = preco_snapshot
        self.preco_atual = preco_atual
        if message is None:
            message = (f"Preço do Produto {produto_id} mudou. "
                       f"Snapshot: {preco_snapshot}, Atual: {preco_atual}.")
        super().__init__(message)

# ===============================================
# ERROS DE COMUNICAÇÃO EXTERNA
# ===============================================

class ComunicacaoProvedorError(BaseErroCore):
    """Falha de rede ou resposta 4xx/5xx do provedor de pagamento."""
    def __init__(self, message="Falha na comunicação com o provedor de pagamento.", status_code=None):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)
