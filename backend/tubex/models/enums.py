# Overview: Enumerated value sets shared by models, migrations, and validation.

COMPANY_TYPES = ("dealer", "supplier")
SUBSCRIPTION_TIERS = ("free", "basic", "premium")
COMPANY_STATUSES = ("pending_verification", "active", "suspended", "rejected")

USER_ROLES = ("admin", "manager", "staff")
USER_STATUSES = ("pending", "active", "inactive")

PRODUCT_STATUSES = ("active", "inactive")

WAREHOUSE_TYPES = ("main", "secondary", "distribution", "storage")
WAREHOUSE_STATUSES = ("active", "inactive", "under_maintenance")

BATCH_STATUSES = ("active", "inactive", "depleted", "expired")
INVENTORY_STATUSES = ("active", "inactive")

ORDER_STATUSES = ("pending", "confirmed", "processing", "shipped", "delivered", "cancelled")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")

INVITATION_STATUSES = ("pending", "accepted", "revoked", "expired")

USER_AUDIT_ACTIONS = ("role_update", "status_update", "removal")

ACTION_TOKEN_PURPOSES = ("email_verification", "password_reset")

PAYMENT_METHODS = ("bank_transfer", "cash", "check", "credit_card", "e_wallet", "other")
PAYMENT_TYPES = ("payment", "refund")
PAYMENT_RECORD_STATUSES = ("completed", "voided")
RECONCILIATION_STATUSES = ("unreconciled", "reconciled", "disputed", "pending_review")

INVOICE_STATUSES = ("draft", "sent", "partially_paid", "paid", "overdue", "void")
PAYMENT_TERMS = ("immediate", "net7", "net15", "net30", "net45", "net60", "net90")
