"""Domain services: lifecycle engine, escrow gateway, chat collaborator."""
