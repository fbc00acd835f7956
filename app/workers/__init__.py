"""Background workers: publication scheduler and upload-notification consumer."""
