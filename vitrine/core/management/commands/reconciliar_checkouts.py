"""
Management command que reconcilia intenções de checkout pendentes com o provedor.
"""
import logging
import time

from django.conf import settings
from django.core.management.base import BaseCommand

from vitrine.core.dependency_injection import get_reconciliar_checkouts_use_case

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Consulta o provedor para as intenções PENDING e liquida as aprovadas."""
    help = "Reconcilia intenções de checkout pendentes com a Wompi."

    def add_arguments(self, parser):
        parser.add_argument(
            '--uma-vez', action='store_true',
            help='Executa uma única varredura e encerra.',
        )
        parser.add_argument(
            '--intervalo', type=int, default=None,
            help='Segundos entre varreduras (padrão: PAGAMENTOS_RECONCILIACAO_INTERVALO).',
        )

    def handle(self, *args, **options):
        intervalo = options['intervalo'] or settings.PAGAMENTOS_RECONCILIACAO_INTERVALO
        use_case = get_reconciliar_checkouts_use_case()

        while True:
            try:
                resumo = use_case.executar()
            except Exception:
                # o processo periódico segue; a próxima rodada tenta de novo
                logger.exception("Falha inesperada na varredura de reconciliação.")
                self.stderr.write(self.style.ERROR('Varredura falhou; veja o log.'))
            else:
                self._imprimir(resumo)

            if options['uma_vez']:
                break
            time.sleep(intervalo)

    def _imprimir(self, resumo):
        if resumo.ignorada:
            self.stdout.write(self.style.WARNING('Varredura anterior ainda em execução; rodada ignorada.'))
            return
        self.stdout.write(self.style.SUCCESS(
            f"Verificadas: {resumo.verificadas} | aprovadas: {resumo.aprovadas} | "
            f"rejeitadas: {resumo.rejeitadas} | expiradas: {resumo.expiradas} | "
            f"pendentes: {resumo.pendentes} | erros: {resumo.erros}"
        ))
