"""
Supplier Portal: purchase orders, work orders, shipments and deliveries

Packages:
    api/           Dashboard Blueprint, route modules and templates
    core/          Status board, record helpers, workflows, configuration
    integrations/  NGauge forms gateway client
"""
