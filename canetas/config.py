# canetas/config.py
"""
Configurações globais e valores padrão do sistema de canetas.
"""

import os
from dataclasses import dataclass


# Caminho padrão do banco de dados SQLite
DB_PATH = os.environ.get("CANETAS_DB", os.path.join(os.getcwd(), "canetas.db"))


@dataclass
class DefaultConfig:
    """Valores padrão para parâmetros do sistema."""
    half_life_dias: float = 5.0  # Meia-vida do modelo de decaimento
    janela_vencimento_dias: int = 14  # "Vence em breve" a partir de N dias
    dias_projecao: int = 21  # Dias extras na curva de concentração
    intervalo_repeticao_dias: int = 7  # Intervalo padrão das doses repetidas
    tamanho_padrao: float = 10.0  # Tamanho (mg) sugerido para canetas novas
    user_id: str = "local"  # Dono dos snapshots diários


# Instância global dos valores padrão
DEFAULTS = DefaultConfig()

# Parâmetros que podem ser sobrescritos via tabela `params`
PARAM_KEYS = ("half_life_dias", "janela_vencimento_dias", "dias_projecao", "intervalo_repeticao_dias")
