"""Storefront bot: persisted cart and manual-payment checkout."""
