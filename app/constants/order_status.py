# forward-only policy; only consulted when ENFORCE_STATUS_TRANSITIONS is on
ALLOWED_TRANSITIONS = {
    "pending": ["paid", "cancelled"],
    "paid": ["shipped", "cancelled"],
    "shipped": ["delivered"],
    "delivered": [],
    "cancelled": []
}
