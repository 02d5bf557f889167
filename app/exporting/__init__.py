from app.exporting.xlsx import export_payments_workbook, export_sales_workbook

__all__ = ["export_payments_workbook", "export_sales_workbook"]
