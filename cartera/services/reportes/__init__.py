"""

Servicios de Reportes.

Exportación a Excel y cartas PDF.

"""

from .exportacion import ExportacionService
from .pdf import PDFReportesService

__all__ = [
    "PDFReportesService",
    "ExportacionService",
]
