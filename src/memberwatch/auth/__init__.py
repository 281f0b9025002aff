"""WhatsApp session and authentication helpers."""
