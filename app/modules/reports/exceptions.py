"""
Errores tipados del motor de reportes.

El router traduce cada uno a su código HTTP; el orquestador los registra
con el tipo de reporte y el rango solicitado antes de propagarlos.
"""


class ReportError(Exception):
    """Base para todos los errores de generación y exportación"""

    status_code = 500
    public_message = "Error interno del servidor"

    def __init__(self, message: str = None, report_type: str = None):
        super().__init__(message or self.public_message)
        self.report_type = report_type


class InvalidRangeError(ReportError):
    """Rango de fechas ausente o invertido"""

    status_code = 400
    public_message = "Fechas de inicio y fin son requeridas"


class UnsupportedReportTypeError(ReportError):
    status_code = 400
    public_message = "Tipo de reporte no válido"


class UnsupportedFormatError(ReportError):
    status_code = 400
    public_message = "Formato no soportado"


class AggregationError(ReportError):
    """Falla del almacén durante la agregación"""


class RenderError(ReportError):
    """Falla del motor de maquetación o del serializador"""
