# app.py
"""
Entrypoint da aplicação.

Uso:
  python app.py migrate --db canetas.db
  python app.py canetas adicionar --tamanho 10 --validade 2025-12-31
  python app.py doses adicionar --caneta <id> --mg 2,5 --repetir-dias 7
  python app.py metricas
  python app.py rel painel
  python app.py importar doses doses.xlsx
"""

from canetas.adapters.cli import main

if __name__ == "__main__":
    main()
