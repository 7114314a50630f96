# canetas/infra/logger.py
"""
Sistema de logging das operações com canetas e doses.

Este módulo configura e fornece loggers para registrar as operações
relevantes do sistema: cadastro de canetas, registro/edição de doses,
cálculo de métricas, snapshots diários e acesso ao banco de dados.

A camada de domínio não registra nada; apenas casos de uso e adapters
chamam as funções daqui.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Any, Optional


# Flag global para habilitar/desabilitar logging
ENABLE_LOGGING = os.environ.get("CANETAS_LOGGING", "0").strip().lower() in {"1", "true", "sim", "yes"}

# Configuração base dos loggers
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Diretório base para logs (na pasta do pacote, ou CANETAS_LOG_DIR)
BASE_DIR = Path(__file__).parent.parent
LOGS_DIR = Path(os.environ.get("CANETAS_LOG_DIR", str(BASE_DIR / "logs")))

LOG_FILES = {
    "transactions": "transactions.log",
    "doses": "doses.log",
    "canetas": "canetas.log",
    "metricas": "metricas.log",
    "database": "database.log",
    "system": "system.log",
}


def setup_logger(name: str, log_file: str, level: int = logging.INFO) -> logging.Logger:
    """
    Configura um logger específico com arquivo de saída.

    O arquivo só é criado na primeira mensagem emitida (``delay=True``),
    então importar o módulo com o logging desligado não toca no disco.

    Args:
        name: Nome do logger
        log_file: Caminho do arquivo de log
        level: Nível de logging (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Logger configurado
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    # Remove handlers de configurações anteriores
    while logger.handlers:
        logger.removeHandler(logger.handlers[0])

    if ENABLE_LOGGING:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_file, encoding='utf-8', delay=True)
    else:
        handler = logging.NullHandler()

    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    logger.addHandler(handler)
    return logger


transaction_logger = setup_logger('canetas.transactions', str(LOGS_DIR / LOG_FILES["transactions"]))
dose_logger = setup_logger('canetas.doses', str(LOGS_DIR / LOG_FILES["doses"]))
caneta_logger = setup_logger('canetas.canetas', str(LOGS_DIR / LOG_FILES["canetas"]))
metricas_logger = setup_logger('canetas.metricas', str(LOGS_DIR / LOG_FILES["metricas"]))
database_logger = setup_logger('canetas.database', str(LOGS_DIR / LOG_FILES["database"]))
system_logger = setup_logger('canetas.system', str(LOGS_DIR / LOG_FILES["system"]))


def log_transaction(operation: str, data: Dict[str, Any], result: Optional[Any] = None, error: Optional[str] = None) -> None:
    """
    Registra uma transação completa no log.

    Args:
        operation: Tipo de operação (dose_unica, caneta_nova, snapshot...)
        data: Dados da transação
        result: Resultado da operação (opcional)
        error: Mensagem de erro (opcional)
    """
    if not ENABLE_LOGGING:
        return
    if error:
        transaction_logger.error(f"TRANSACTION_FAILED: {operation} - {error} - Data: {data}")
    else:
        transaction_logger.info(f"TRANSACTION_SUCCESS: {operation} - Result: {result} - Data: {data}")


def log_dose(action: str, dose_id: Any, pen_id: Any, mg: Any = None, **kwargs) -> None:
    """
    Log específico para operações com doses.

    Args:
        action: Ação realizada (insert, complete, update, delete)
        dose_id: Identificador da dose
        pen_id: Caneta da dose
        mg: Quantidade (opcional)
        **kwargs: Dados adicionais
    """
    if not ENABLE_LOGGING:
        return
    log_data = {"action": action, "dose_id": dose_id, "pen_id": pen_id, "mg": mg, **kwargs}
    dose_logger.info(f"DOSE_{action.upper()}: {log_data}")


def log_caneta(action: str, pen_id: Any, size: Any = None, **kwargs) -> None:
    """
    Log específico para operações com canetas.

    Args:
        action: Ação realizada (insert, delete)
        pen_id: Identificador da caneta
        size: Tamanho nominal (opcional)
        **kwargs: Dados adicionais
    """
    if not ENABLE_LOGGING:
        return
    log_data = {"action": action, "pen_id": pen_id, "size": size, **kwargs}
    caneta_logger.info(f"CANETA_{action.upper()}: {log_data}")


def log_metricas(event: str, **kwargs) -> None:
    """Log de cálculos de métricas (totais, canetas em risco)."""
    if not ENABLE_LOGGING:
        return
    metricas_logger.info(f"METRICAS_{event.upper()}: {kwargs}")


def log_database_operation(table: str, operation: str, affected_rows: int = 0, **kwargs) -> None:
    """
    Log específico para operações no banco de dados.

    Args:
        table: Nome da tabela
        operation: Operação SQL (INSERT, UPDATE, DELETE, SELECT, UPSERT)
        affected_rows: Número de linhas afetadas
        **kwargs: Dados adicionais
    """
    if not ENABLE_LOGGING:
        return
    log_data = {"table": table, "operation": operation, "affected_rows": affected_rows, **kwargs}
    database_logger.info(f"DB_{operation}: {log_data}")


def log_system_event(event: str, details: Dict[str, Any] = None, level: str = "info") -> None:
    """
    Log para eventos do sistema.

    Args:
        event: Descrição do evento
        details: Detalhes adicionais (opcional)
        level: Nível do log (info, warning, error)
    """
    if not ENABLE_LOGGING:
        return
    log_data = {"event": event, "details": details or {}}
    log_method = getattr(system_logger, level.lower(), system_logger.info)
    log_method(f"SYSTEM_EVENT: {event} - {log_data}")


def log_file_operation(operation: str, file_path: str, rows_processed: int = 0, **kwargs) -> None:
    """
    Log para operações de arquivo (importação de planilhas).

    Args:
        operation: Tipo de operação (import, export)
        file_path: Caminho do arquivo
        rows_processed: Número de linhas processadas
        **kwargs: Dados adicionais
    """
    if not ENABLE_LOGGING:
        return
    log_data = {"operation": operation, "file_path": file_path, "rows_processed": rows_processed, **kwargs}
    system_logger.info(f"FILE_{operation.upper()}: {log_data}")


def get_log_summary(log_type: str = "transactions", lines: int = 100) -> Optional[str]:
    """
    Obtém um resumo dos logs recentes.

    Args:
        log_type: Tipo de log (chave de ``LOG_FILES``)
        lines: Número de linhas a retornar

    Returns:
        Conteúdo do log como string (``None`` com logging desligado)
    """
    if not ENABLE_LOGGING:
        return None

    file_name = LOG_FILES.get(log_type)
    if not file_name:
        return f"Log {log_type} desconhecido."
    log_file = LOGS_DIR / file_name
    if not log_file.exists():
        return f"Log {log_type} não encontrado."

    try:
        with open(log_file, 'r', encoding='utf-8') as f:
            all_lines = f.readlines()
            return ''.join(all_lines[-lines:])
    except OSError as e:
        return f"Erro ao ler log {log_type}: {e}"
