"""Pure domain layer: amounts, records, events, capabilities and imbalances."""
