"""Trial workbook / CSV reading."""
