"""
Reports Module - POS República Dominicana

Reportes de ventas y cumplimiento fiscal (DGII) sobre las tablas de
ventas, productos, clientes, usuarios y secuencias NCF. El módulo no crea
tablas propias.

Reportes disponibles:
- daily: ventas del período por método de pago, NCF, producto, cliente y cajero
- itbis: ITBIS recaudado, tendencia diaria y verificación de la tasa del 18%
- ncf: estado de secuencias, uso por tipo y controles de secuencia
- inventory: valorización, rotación y alertas de stock
- customers: segmentación, ranking y puntaje de lealtad
- audit: rastro completo de transacciones, seguridad y riesgo
- dgii: resumen de cumplimiento para la DGII

Architecture Pattern: Service Layer
- routers/ -> endpoints FastAPI
- services/ -> agregación por tipo de reporte y orquestador
- schemas/ -> resultados tipados (pydantic)
- export/ -> documento neutro y renderizado PDF / CSV
- utils/ -> formateo y anchos de columna
"""

from .routers import reports_router

__all__ = ["reports_router"]
