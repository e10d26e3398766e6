from io import BytesIO

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import cm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from inventory.domain.models import Equipment, ResponsibilityTerm

OBLIGATIONS = (
    "Zelar pela guarda, conservação e bom uso do equipamento;",
    "Utilizá-lo exclusivamente para atividades profissionais;",
    "Não realizar alterações ou modificações sem autorização prévia do setor de TI;",
    "Comunicar imediatamente qualquer dano, defeito ou extravio ao setor responsável;",
    "Devolver o equipamento quando solicitado ou ao término do vínculo profissional;",
    "Responder por danos causados por mau uso, negligência ou extravio.",
)

MONTHS = (
    "janeiro", "fevereiro", "março", "abril", "maio", "junho",
    "julho", "agosto", "setembro", "outubro", "novembro", "dezembro",
)


def format_brl(value: float) -> str:
    formatted = f"{value:,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    return f"R$ {formatted}"


def long_date(value) -> str:
    return f"{value.day} de {MONTHS[value.month - 1]} de {value.year}"


class ReportlabTermRenderer:
    """Draws the responsibility term as an A4 PDF."""

    def __init__(self, city: str = "Rio de Janeiro") -> None:
        self._city = city

    def render(self, equipment: Equipment, term: ResponsibilityTerm) -> bytes:
        buf = BytesIO()
        c = canvas.Canvas(buf, pagesize=A4)
        c.setTitle(f"Termo de Responsabilidade - {equipment.asset_number}")
        width, height = A4
        margin = 2 * cm
        y = height - margin

        def line(text, size=11, bold=False, indent=0.0, gap=0.0):
            nonlocal y
            font = "Helvetica-Bold" if bold else "Helvetica"
            c.setFont(font, size)
            for part in simpleSplit(text, font, size, width - 2 * margin - indent):
                if y < margin:
                    c.showPage()
                    c.setFont(font, size)
                    y = height - margin
                c.drawString(margin + indent, y, part)
                y -= size * 1.5
            y -= gap

        c.setFont("Helvetica-Bold", 18)
        c.drawCentredString(width / 2, y, "TERMO DE RESPONSABILIDADE")
        y -= 22
        c.setFont("Helvetica", 12)
        c.drawCentredString(width / 2, y, "Equipamento de Tecnologia da Informação")
        y -= 18
        c.line(margin, y, width - margin, y)
        y -= 24

        line("1. IDENTIFICAÇÃO DO EQUIPAMENTO", 13, bold=True, gap=4)
        line(f"Patrimônio: {equipment.asset_number}")
        line(f"Descrição: {equipment.description}")
        line(f"Marca/Modelo: {equipment.brand} {equipment.model}")
        line(f"Localização: {equipment.location}")
        line(f"Valor: {format_brl(equipment.value)}")
        line(f"Data de Aquisição: {equipment.acquisition_date.strftime('%d/%m/%Y')}")
        if equipment.specs:
            line(f"Especificações: {equipment.specs}")
        y -= 12

        line("2. DADOS DO RESPONSÁVEL", 13, bold=True, gap=4)
        line(f"Nome: {term.responsible_person}")
        line(f"E-mail: {term.responsible_email}")
        if term.responsible_phone:
            line(f"Telefone: {term.responsible_phone}")
        line(f"Departamento: {term.responsible_department}")
        y -= 12

        line("3. TERMOS E CONDIÇÕES", 13, bold=True, gap=4)
        line(
            "Pelo presente termo, declaro ter recebido o equipamento acima identificado em "
            "perfeitas condições de uso e conservação, comprometendo-me a:",
            gap=4,
        )
        for obligation in OBLIGATIONS:
            line(f"• {obligation}", indent=0.5 * cm)

        if term.observations:
            y -= 12
            line("4. OBSERVAÇÕES", 13, bold=True, gap=4)
            line(term.observations)

        y = min(y - 24, 6 * cm)
        line(f"{self._city}, {long_date(term.term_date)}", gap=36)
        c.line(margin, y, margin + 9 * cm, y)
        y -= 16
        line(term.responsible_person)

        c.showPage()
        c.save()
        return buf.getvalue()
