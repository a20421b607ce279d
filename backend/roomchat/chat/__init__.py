"""Real-time room chat: sessions, broadcasting, receipts, reactions and join replay."""
