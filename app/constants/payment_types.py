# Ledger payment labels

SALE_PAYMENT = "Credit"
RTO_PAYMENT = "RTO"

# Receipt modes accepted by RecordReceipt
RECEIPT_PAYMENTS = (
    "Cash",
    "Cheque",
    "DD",
    "RTGS",
    "NEFT",
    "IMPS",
    "Bank",
    "Demand Draft",
    "Overseas (COD)",
    "Others",
)

# Rows whose total_amt counts towards total sales
SALE_LIKE_PAYMENTS = (SALE_PAYMENT, "") + RECEIPT_PAYMENTS

CREDIT_LIMIT_HOLD_REASON = "Credit Limit Exceeded"
