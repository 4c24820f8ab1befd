"""Fixed page geometry for the vector invoice layout.

Units are points on an A4 page with a top-left origin. Text ``*_Y`` values
are baselines.
"""

from __future__ import annotations

PAGE_FORMAT = "A4"
PAGE_W = 595.28
PAGE_H = 841.89
MARGIN = 50.0
CONTENT_W = 495.0
CONTENT_RIGHT = MARGIN + CONTENT_W
PAGE_CENTER = PAGE_W / 2.0

# Header band
TITLE_Y = 84.0
COMPANY_NAME_Y = 138.0
COMPANY_LINE_Y = 160.0
COMPANY_LINE_H = 15.0
COMPANY_MAX_LINES = 4
BADGE_Y = 130.0
DIVIDER_Y = 220.0
DIVIDER_W = 3.0

# Metadata boxes (invoice number, invoice date)
META_BOX_Y = 240.0
META_BOX_W = 245.0
META_BOX_H = 80.0
META_BOX_GAP = 5.0
META_LABEL_OFFSET_Y = 18.0
META_VALUE_OFFSET_Y = 38.0
META_PAD_X = 10.0

# Bill to
BILL_TO_LABEL_Y = 359.0
BILL_TO_NAME_Y = 382.0

# Line-item table
TABLE_BAR_Y = 420.0
TABLE_BAR_H = 30.0
TABLE_BAR_RADIUS = 4.0
TABLE_BAR_TEXT_Y = 439.0
TABLE_TEXT_X = 60.0
AMOUNT_RIGHT = 535.0
ROW_Y = 474.0
ROW_LINE_H = 14.0
ROW_MAX_LINES = 3
DESCRIPTION_W = 360.0
ROW_SEPARATOR_Y = 520.0

# Totals band
TOTALS_Y = 540.0
TOTALS_H = 60.0
TOTALS_LABEL_Y = 575.0
TOTALS_VALUE_Y = 581.0

# Footer
FOOTER_THANKS_Y = 645.0
FOOTER_NOTE_Y = 663.0
FOOTER_PAYMENT_Y = 677.0
FOOTER_CONTACT_Y = 691.0

# Colors (RGB)
COLOR_ACCENT = (37, 99, 235)        # #2563EB
COLOR_INK = (30, 41, 59)            # #1E293B
COLOR_MUTED = (100, 116, 139)       # #64748B
COLOR_PAID = (16, 185, 129)         # #10B981
COLOR_BOX_FILL = (248, 250, 252)    # #F8FAFC
COLOR_BOX_STROKE = (226, 232, 240)  # #E2E8F0
COLOR_WHITE = (255, 255, 255)

FONT_SIZE_TITLE = 36
FONT_SIZE_COMPANY = 18
FONT_SIZE_BODY = 11
FONT_SIZE_SMALL = 9
FONT_SIZE_LABEL = 10
FONT_SIZE_VALUE = 12
FONT_SIZE_CLIENT = 14
FONT_SIZE_TOTAL = 28
