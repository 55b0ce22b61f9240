"""Blood Report Parser.

Reads blood-test report images with Tesseract OCR, extracts Hemoglobin,
RBC, WBC and Platelet Count values, keeps a history of parsed reports,
and exports results as CSV or PDF.
"""

__version__ = "1.0.0"
