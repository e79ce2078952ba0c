"""
CSV back end

UTF-8 with BOM so spreadsheet apps detect the encoding; a short preamble
and then one block per section: title, header row, data rows, blank line.
"""

import csv
import io

from ..utils import format_datetime
from .sections import ReportDocument


BOM = "\ufeff"


class CSVReportRenderer:
    def __init__(self, business_name: str):
        self.business_name = business_name

    def render(self, document: ReportDocument) -> bytes:
        output = io.StringIO()
        writer = csv.writer(output)

        writer.writerow([f"{self.business_name} - Reporte {document.title}"])
        writer.writerow(["Período", document.period])
        writer.writerow(["Generado", format_datetime(document.generated_at)])
        writer.writerow([])

        for section in document.sections:
            writer.writerow([section.title])
            writer.writerow(section.headers)
            writer.writerows(section.rows)
            writer.writerow([])

        content = BOM + output.getvalue()
        output.close()
        return content.encode("utf-8")
