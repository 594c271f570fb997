"""Output layer — wire responses and Rich rendering of ServiceResult."""
