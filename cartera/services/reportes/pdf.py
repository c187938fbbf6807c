"""

Cartas PDF de la corredora: aviso de mora y aviso de vencimiento.

Diseño sobrio de una sola familia tipográfica, pensado para imprimirse y

enviarse al cliente.

"""

import io

from decimal import Decimal

from django.http import HttpResponse

from django.utils import timezone

from reportlab.graphics.shapes import Drawing, Rect

from reportlab.lib import colors

from reportlab.lib.enums import TA_CENTER, TA_JUSTIFY, TA_LEFT, TA_RIGHT

from reportlab.lib.pagesizes import A4

from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet

from reportlab.lib.units import cm

from reportlab.platypus import KeepTogether, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from cartera import formato

from ..base import BaseService, ResultadoOperacion

# =============================================================================

# PALETA DE COLORES

# =============================================================================


class Colors:
    """Paleta limitada para documentos institucionales."""

    GRAY_900 = colors.HexColor("#1a1a1a")  # Texto principal

    GRAY_700 = colors.HexColor("#4a4a4a")  # Texto secundario

    GRAY_500 = colors.HexColor("#6b6b6b")

    GRAY_300 = colors.HexColor("#d1d1d1")  # Bordes ligeros

    GRAY_100 = colors.HexColor("#f5f5f5")  # Fondos sutiles

    WHITE = colors.HexColor("#ffffff")

    ACCENT = colors.HexColor("#2c3e50")

    DANGER = colors.HexColor("#b91c1c")


CIUDAD_EMISION = "Santa Cruz de la Sierra"

ARTICULOS_CODIGO_COMERCIO = [
    (
        "Art. 1015.- (OBLIGACION DE PAGAR LA PRIMA).",
        "Es obligación del asegurado pagar la prima conforme a lo convenido.",
    ),
    (
        "Art. 1017.- (EXIGIBILIDAD DE LA PRIMA).",
        "La prima es debida desde el momento de la celebración del contrato, pero no es exigible sino con "
        "la entrega de la póliza o certificado provisional de cobertura. Las primas sucesivas se pagarán al "
        "comienzo de cada período, salvo que se estipule otra forma de pago.",
    ),
    (
        "Art. 1018.- (LAS PRIMAS EN LOS SEGUROS DE DAÑOS).",
        "\"...Suspendida la vigencia de la póliza, el asegurador tiene derecho a la prima correspondiente al "
        "periodo corrido, calculado conforme a la tarifa para seguros a corto plazo...\".",
    ),
    (
        "Art. 1022.- (LUGAR DEL PAGO).",
        "La prima debe pagarse en el domicilio del asegurador o en el lugar indicado en la póliza. No incurre "
        "en mora el asegurado, si el lugar del pago o el domicilio han sido cambiados sin su conocimiento.",
    ),
]

ADVERTENCIA_MORA = (
    "Es importante informarle que el incumplimiento en el pago de la prima más los intereses (si hubiesen), "
    "dentro de los plazos establecidos que se detallan en el cuadro líneas arriba, suspende la vigencia de la "
    "presente póliza, de conformidad con el inciso d) del Artículo 58 de la Ley de Seguros 1883, perdiendo el "
    "asegurado el derecho de recibir indemnización alguna por cualquier siniestro."
)

RESCISION_MORA = (
    "\"Caso contrario, LA COMPAÑÍA DE SEGURO DARÁ POR RESCINDIDO EL CONTRATO DE SEGURO, procediendo a la "
    "ANULACIÓN de la póliza, y en aplicación del último acápite del Art. 1018, la compañía se reserva el "
    "derecho de efectuar la cobranza de tales primas por vía ejecutiva, con el consiguiente reporte a la "
    "Central de Riesgos, normado mediante R.A. Nro. 746 del 31/12/2001, emitida por la Superintendencia de "
    "Pensiones, Valores y Seguros.\""
)

ETIQUETAS_ESTADO_CUOTA = {
    'vencido': 'PENDIENTE',
    'pendiente': 'PRÓXIMO',
    'parcial': 'PARCIAL',
}

# =============================================================================

# SERVICIO PRINCIPAL

# =============================================================================


class PDFReportesService(BaseService):
    """Generador de las cartas PDF enviadas a los clientes."""

    PAGE_SIZE = A4

    MARGIN = 2 * cm

    WIDTH = PAGE_SIZE[0] - 2 * MARGIN

    @classmethod
    def _styles(cls):
        """Estilos tipográficos: una sola familia, jerarquía clara."""

        s = getSampleStyleSheet()

        s.add(
            ParagraphStyle(
                "RptMainTitle",
                fontName="Helvetica-Bold",
                fontSize=16,
                textColor=Colors.GRAY_900,
                alignment=TA_LEFT,
                spaceAfter=6,
                leading=20,
            )
        )

        s.add(
            ParagraphStyle(
                "RptSubtitle",
                fontName="Helvetica",
                fontSize=10,
                textColor=Colors.GRAY_500,
                alignment=TA_LEFT,
                spaceAfter=10,
                leading=14,
            )
        )

        s.add(
            ParagraphStyle(
                "RptBody",
                fontName="Helvetica",
                fontSize=10,
                textColor=Colors.GRAY_700,
                spaceAfter=10,
                leading=14,
                alignment=TA_JUSTIFY,
            )
        )

        s.add(
            ParagraphStyle(
                "RptHighlight",
                fontName="Helvetica-Bold",
                fontSize=10,
                textColor=Colors.GRAY_900,
                spaceAfter=6,
                leading=14,
            )
        )

        # Artículos legales con sangría

        s.add(
            ParagraphStyle(
                "RptArticle",
                parent=s["Normal"],
                fontName="Helvetica",
                fontSize=9,
                textColor=Colors.GRAY_700,
                leftIndent=15,
                spaceAfter=6,
                leading=12,
                alignment=TA_JUSTIFY,
            )
        )

        s.add(
            ParagraphStyle(
                "RptReference",
                fontName="Helvetica-Bold",
                fontSize=10,
                textColor=Colors.GRAY_900,
                alignment=TA_RIGHT,
                leading=14,
            )
        )

        s.add(
            ParagraphStyle(
                "RptFooter",
                fontName="Helvetica",
                fontSize=8,
                textColor=Colors.GRAY_500,
                alignment=TA_CENTER,
                leading=10,
            )
        )

        s.add(ParagraphStyle("RptCell", fontName="Helvetica", fontSize=9, textColor=Colors.GRAY_700, leading=12))

        s.add(
            ParagraphStyle("RptCellBold", fontName="Helvetica-Bold", fontSize=9, textColor=Colors.GRAY_900, leading=12)
        )

        s.add(
            ParagraphStyle(
                "RptCellRight",
                fontName="Helvetica",
                fontSize=9,
                textColor=Colors.GRAY_700,
                alignment=TA_RIGHT,
                leading=12,
            )
        )

        s.add(
            ParagraphStyle(
                "RptCellHeader",
                fontName="Helvetica-Bold",
                fontSize=9,
                textColor=Colors.GRAY_900,
                alignment=TA_LEFT,
                leading=12,
            )
        )

        return s

    # =========================================================================

    # COMPONENTES DE DISEÑO

    # =========================================================================

    @classmethod
    def _linea(cls):

        d = Drawing(cls.WIDTH, 0.5)

        d.add(Rect(0, 0, cls.WIDTH, 0.5, fillColor=Colors.GRAY_300, strokeColor=None))

        return d

    @classmethod
    def _header_banner(cls, title, subtitle=None):
        """Encabezado de la carta: empresa, lugar y fecha."""

        s = cls._styles()

        elements = [cls._linea(), Spacer(1, 12)]

        elements.append(Paragraph(title, s["RptMainTitle"]))

        if subtitle:

            elements.append(Paragraph(subtitle, s["RptSubtitle"]))

        elements.append(cls._linea())

        elements.append(Spacer(1, 18))

        return elements

    @classmethod
    def _data_table(cls, headers, rows, col_widths=None, total=None):
        """
        Tabla de datos. ``total`` es una fila final ``(etiqueta, valor)`` que se

        resalta en negrita.
        """

        s = cls._styles()

        header_row = [Paragraph(h, s["RptCellHeader"]) for h in headers]

        data_rows = []

        for row in rows:

            cells = []

            for cell in row:

                txt = str(cell) if cell is not None else "-"

                es_numero = txt.replace(".", "").replace(",", "").replace(" ", "").isdigit()

                cells.append(Paragraph(txt, s["RptCellRight"] if es_numero else s["RptCell"]))

            data_rows.append(cells)

        all_data = [header_row] + data_rows

        if total is not None:

            etiqueta, valor = total

            fila_total = [Paragraph(etiqueta, s["RptCellBold"])] + [""] * (len(headers) - 3)

            fila_total += [Paragraph(valor, s["RptCellBold"]), ""]

            all_data.append(fila_total)

        if col_widths is None:

            col_widths = [cls.WIDTH / len(headers)] * len(headers)

        table = Table(all_data, colWidths=col_widths, repeatRows=1)

        style_cmds = [
            ("BACKGROUND", (0, 0), (-1, 0), Colors.GRAY_100),
            ("TEXTCOLOR", (0, 0), (-1, 0), Colors.GRAY_900),
            ("TOPPADDING", (0, 0), (-1, -1), 6),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
            ("LEFTPADDING", (0, 0), (-1, -1), 6),
            ("RIGHTPADDING", (0, 0), (-1, -1), 6),
            ("LINEBELOW", (0, 0), (-1, 0), 1, Colors.GRAY_300),
            ("LINEBELOW", (0, 1), (-1, -2), 0.5, Colors.GRAY_300),
            ("LINEBELOW", (0, -1), (-1, -1), 1, Colors.GRAY_300),
        ]

        if total is not None:

            style_cmds.append(("SPAN", (0, -1), (len(headers) - 3, -1)))

            style_cmds.append(("BACKGROUND", (0, -1), (-1, -1), Colors.GRAY_100))

        table.setStyle(TableStyle(style_cmds))

        return table

    @classmethod
    def _indicator_box(cls, text):
        """Caja con borde izquierdo para advertencias."""

        s = cls._styles()

        estilo = ParagraphStyle("Ind", parent=s["RptBody"], textColor=Colors.GRAY_900, fontName="Helvetica-Bold")

        t = Table([[Paragraph(text, estilo)]], colWidths=[cls.WIDTH - 20])

        t.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, -1), Colors.GRAY_100),
                    ("LINEBEFORE", (0, 0), (0, -1), 2, Colors.DANGER),
                    ("TOPPADDING", (0, 0), (-1, -1), 10),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
                    ("LEFTPADDING", (0, 0), (-1, -1), 12),
                    ("RIGHTPADDING", (0, 0), (-1, -1), 12),
                ]
            )
        )

        return t

    @classmethod
    def _firma(cls, empresa, firmante=None):

        s = cls._styles()

        bloque = [Spacer(1, 20), Paragraph("Atentamente,", s["RptBody"]), Spacer(1, 40)]

        bloque.append(Paragraph("_______________________________", s["RptBody"]))

        if firmante:

            bloque.append(Paragraph(firmante, s["RptHighlight"]))

        bloque.append(Paragraph(empresa, s["RptHighlight"]))

        return KeepTogether(bloque)

    @classmethod
    def _footer(cls, empresa):
        """Pie de página con el nombre de la empresa."""

        s = cls._styles()

        elements = [Spacer(1, 30), cls._linea(), Spacer(1, 6)]

        elements.append(
            Paragraph(f"{empresa} • Gestión de Cartera • {timezone.localtime():%d/%m/%Y %H:%M}", s["RptFooter"])
        )

        return elements

    @staticmethod
    def _saludo(tipo_cliente):

        return "Señores" if tipo_cliente in ("juridica", "unipersonal") else "Señor(a)"

    @classmethod
    def _respuesta_pdf(cls, elements, nombre_archivo):

        buffer = io.BytesIO()

        doc = SimpleDocTemplate(
            buffer,
            pagesize=cls.PAGE_SIZE,
            leftMargin=cls.MARGIN,
            rightMargin=cls.MARGIN,
            topMargin=cls.MARGIN,
            bottomMargin=cls.MARGIN,
        )

        doc.build(elements)

        buffer.seek(0)

        response = HttpResponse(buffer, content_type="application/pdf")

        response["Content-Disposition"] = f'attachment; filename="{nombre_archivo}"'

        return response

    # =========================================================================

    # AVISO DE MORA

    # =========================================================================

    @classmethod
    def generar_aviso_mora_pdf(cls, datos, firmante=None):
        """
        Carta de aviso de mora a partir de ``CobranzaService.obtener_datos_aviso_mora``.

        Lista las cuotas impagas con su total y transcribe los artículos del

        Código de Comercio sobre el pago de la prima.
        """

        s = cls._styles()

        poliza = datos["poliza"]

        cliente = datos["cliente"]

        empresa = datos.get("empresa") or cls._get_config("NOMBRE_EMPRESA", "Patria S.A.")

        moneda = poliza["moneda"]

        elements = cls._header_banner(
            empresa,
            f"{CIUDAD_EMISION}, {formato.fecha_larga(datos['fecha_emision'])}",
        )

        elements.append(Paragraph(datos["numero_referencia"], s["RptReference"]))

        elements.append(Spacer(1, 12))

        elements.append(Paragraph(f"{cls._saludo(cliente.get('tipo_cliente'))}:", s["RptBody"]))

        elements.append(Paragraph(cliente["nombre"].upper(), s["RptHighlight"]))

        if cliente.get("direccion"):

            elements.append(Paragraph(cliente["direccion"], s["RptBody"]))

        if cliente.get("telefono"):

            elements.append(Paragraph(f"Telf.: {cliente['telefono']}", s["RptBody"]))

        elements.append(Paragraph("Presente.-", s["RptHighlight"]))

        elements.append(Spacer(1, 8))

        elements.append(Paragraph("<u>Ref.: AVISO DE MORA</u>", s["RptHighlight"]))

        elements.append(Paragraph("De nuestra consideración:", s["RptBody"]))

        elements.append(
            Paragraph(
                f"Por medio de la presente, tenemos a bien informarle que la póliza contratada en "
                f"{poliza['compania']} se encuentra con primas pendientes de pago de acuerdo con el "
                f"siguiente detalle:",
                s["RptBody"],
            )
        )

        elements.append(Paragraph(f"ASEGURADO: {cliente['nombre'].upper()}", s["RptHighlight"]))

        elements.append(Paragraph(f"COMPAÑÍA: {poliza['compania'].upper()}", s["RptHighlight"]))

        elements.append(Spacer(1, 6))

        rows = []

        for i, cuota in enumerate(datos["cuotas"]):

            rows.append(
                [
                    poliza["numero_poliza"] if i == 0 else "",
                    f"CUOTA {cuota['numero_cuota']}",
                    formato.fecha_corta(cuota["fecha_vencimiento"]),
                    formato.numero(cuota["saldo_pendiente"]),
                    ETIQUETAS_ESTADO_CUOTA.get(cuota["estado"], cuota["estado"].upper()),
                ]
            )

        total = datos["totales"]["total_adeudado"]

        elements.append(
            cls._data_table(
                ["PÓLIZA", "CUOTA", "VENCIMIENTO", f"PRIMA EN {moneda}", "ESTADO"],
                rows,
                [cls.WIDTH * 0.24, cls.WIDTH * 0.16, cls.WIDTH * 0.2, cls.WIDTH * 0.2, cls.WIDTH * 0.2],
                total=(f"TOTAL PRIMA EN {moneda}", formato.numero(total)),
            )
        )

        elements.append(Spacer(1, 14))

        elements.append(
            Paragraph("Le recordamos lo establecido en el Código de Comercio en su Sección V:", s["RptBody"])
        )

        for titulo, texto in ARTICULOS_CODIGO_COMERCIO:

            elements.append(Paragraph(f"<b>{titulo}</b> {texto}", s["RptArticle"]))

        elements.append(
            Paragraph(
                "Igualmente y en cumplimiento a lo establecido en el Reglamento de Corredores de Seguros y sus "
                "modificaciones, le hacemos conocer lo antes mencionado.",
                s["RptArticle"],
            )
        )

        elements.append(Spacer(1, 8))

        elements.append(cls._indicator_box(ADVERTENCIA_MORA))

        elements.append(Spacer(1, 8))

        elements.append(Paragraph(RESCISION_MORA, s["RptBody"]))

        elements.append(
            Paragraph(
                "Si a la fecha de recibir la presente usted ha regularizado los mencionados pagos, le "
                "agradeceremos dejar sin efecto este aviso.",
                s["RptBody"],
            )
        )

        elements.append(
            Paragraph(
                "Con este particular y a su entera disposición para cualquier consulta al respecto, hacemos "
                "propicia la oportunidad para saludarlo muy cordialmente.",
                s["RptBody"],
            )
        )

        elements.append(cls._firma(empresa, firmante))

        elements.extend(cls._footer(empresa))

        return cls._respuesta_pdf(elements, f"aviso_mora_{datos['numero_referencia']}.pdf")

    @classmethod
    def generar_aviso_mora(cls, usuario, poliza_id):
        """Aviso de mora listo para descargar."""

        from ..cobranza import CobranzaService

        resultado = CobranzaService.obtener_datos_aviso_mora(usuario, poliza_id)

        if not resultado.exitoso:

            return resultado

        firmante = usuario.get_full_name() or usuario.username

        return ResultadoOperacion.exito(cls.generar_aviso_mora_pdf(resultado.objeto, firmante))

    # =========================================================================

    # AVISO DE VENCIMIENTO

    # =========================================================================

    @classmethod
    def generar_carta_vencimiento_pdf(cls, poliza, firmante=None, fecha_emision=None):

        s = cls._styles()

        empresa = cls._get_config("NOMBRE_EMPRESA", "Patria S.A.")

        fecha_emision = fecha_emision or timezone.localdate()

        cliente = poliza.cliente

        elements = cls._header_banner(empresa, f"{CIUDAD_EMISION}, {formato.fecha_larga(fecha_emision)}")

        elements.append(Paragraph(f"{cls._saludo(cliente.tipo_cliente)}:", s["RptBody"]))

        elements.append(Paragraph(cliente.nombre_completo.upper(), s["RptHighlight"]))

        telefono = cliente.celular or cliente.telefono

        if telefono:

            elements.append(Paragraph(f"Telf.: {telefono}", s["RptBody"]))

        if cliente.email:

            elements.append(Paragraph(cliente.email, s["RptBody"]))

        elements.append(Paragraph("Presente.", s["RptHighlight"]))

        elements.append(Spacer(1, 8))

        elements.append(Paragraph("<u>Ref.: AVISO DE VENCIMIENTO PÓLIZA DE SEGURO</u>", s["RptHighlight"]))

        elements.append(Paragraph("De nuestra consideración:", s["RptBody"]))

        elements.append(
            Paragraph(
                "Por medio de la presente, nos permitimos recordarle que se aproxima el vencimiento de la "
                "Póliza de Seguro cuyos detalles se especifican a continuación:",
                s["RptBody"],
            )
        )

        elements.append(
            cls._data_table(
                ["PÓLIZA", "COMPAÑÍA", "RAMO", "VIGENCIA", f"PRIMA EN {poliza.moneda}"],
                [
                    [
                        poliza.numero_poliza,
                        poliza.compania.nombre,
                        poliza.ramo.nombre,
                        f"{formato.fecha_corta(poliza.inicio_vigencia)} al {formato.fecha_corta(poliza.fin_vigencia)}",
                        formato.numero(poliza.prima_total or Decimal("0")),
                    ]
                ],
                [cls.WIDTH * 0.18, cls.WIDTH * 0.22, cls.WIDTH * 0.18, cls.WIDTH * 0.24, cls.WIDTH * 0.18],
            )
        )

        elements.append(Spacer(1, 14))

        elements.append(
            Paragraph(
                "Tenga a bien hacernos conocer cualquier cambio que desea realizar o en su defecto su "
                "consentimiento para la renovación.",
                s["RptBody"],
            )
        )

        elements.append(
            cls._indicator_box(
                "Es importante informarle que, en caso de tener primas pendientes no se podrá renovar hasta su "
                "regularización, y que la NO RENOVACIÓN suspende toda cobertura de la póliza de seguro."
            )
        )

        elements.append(Spacer(1, 8))

        elements.append(
            Paragraph(
                "De esta manera quedamos a la espera de su respuesta, nos despedimos con la cordialidad de siempre.",
                s["RptBody"],
            )
        )

        elements.append(cls._firma(empresa, firmante))

        elements.extend(cls._footer(empresa))

        return cls._respuesta_pdf(elements, f"aviso_vencimiento_{poliza.numero_poliza}.pdf")

    @classmethod
    def generar_carta_vencimiento(cls, usuario, poliza_id):

        from cartera.models import Poliza

        denegado = cls._verificar_permiso(
            usuario, "vencimientos.generar", "No tiene permisos para generar cartas de vencimiento"
        )

        if denegado:

            return denegado

        try:

            poliza = Poliza.objects.select_related("cliente", "compania", "ramo").get(pk=poliza_id)

        except Poliza.DoesNotExist:

            return ResultadoOperacion.error("Póliza no encontrada")

        firmante = usuario.get_full_name() or usuario.username

        return ResultadoOperacion.exito(cls.generar_carta_vencimiento_pdf(poliza, firmante))
