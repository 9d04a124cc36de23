"""
Seed the knowledge base with the default store information.

Usage:
    python -m support_chat.features.knowledge.seed

Entries are inserted only when ``knowledge_entries`` is empty.
"""

import logging
import sys
from typing import Dict, List

from dotenv import load_dotenv
from sqlalchemy.orm import sessionmaker

from ...core.config import Settings
from ...core.database import create_db_engine, create_session_factory, init_db, run_in_session
from ...core.exceptions import SupportChatError
from .crud import KnowledgeCRUD

logger = logging.getLogger(__name__)

DEFAULT_KNOWLEDGE: List[Dict] = [
    {
        "category": "shipping",
        "title": "Shipping Regions",
        "content": (
            "Spur of the Moment Shop ships to all 50 US states, Canada, UK, and Australia. "
            "Because impulse buys know no borders! International shipping typically takes "
            "7-14 business days."
        ),
        "priority": 10,
    },
    {
        "category": "shipping",
        "title": "Shipping Costs",
        "content": (
            "Free standard shipping on orders over $50. Standard shipping (5-7 business days) "
            "costs $5.99. Express shipping (2-3 business days) costs $12.99."
        ),
        "priority": 9,
    },
    {
        "category": "shipping",
        "title": "Order Tracking",
        "content": (
            "Once your order ships, you will receive a tracking number via email. You can track "
            "your order using this number on our website or the carrier's website."
        ),
        "priority": 8,
    },
    {
        "category": "returns",
        "title": "Return Window",
        "content": (
            "We accept returns within 30 days of delivery. Items must be unused, in original "
            "packaging, with all tags attached."
        ),
        "priority": 10,
    },
    {
        "category": "returns",
        "title": "Return Process",
        "content": (
            "To initiate a return, email support@spurshop.com with your order number. We will "
            "provide a prepaid return shipping label within 24 hours."
        ),
        "priority": 9,
    },
    {
        "category": "returns",
        "title": "Refund Timeline",
        "content": (
            "Refunds are processed within 5-7 business days after we receive your return. "
            "The refund will be issued to your original payment method."
        ),
        "priority": 8,
    },
    {
        "category": "returns",
        "title": "Non-Returnable Items",
        "content": (
            "Final sale items, personalized products, and opened hygiene products cannot be "
            "returned for hygiene and safety reasons."
        ),
        "priority": 7,
    },
    {
        "category": "support",
        "title": "Customer Support Hours",
        "content": (
            "Our customer support team is available Monday through Friday, 9 AM to 6 PM EST. "
            "We typically respond to emails within 24 hours on business days."
        ),
        "priority": 10,
    },
    {
        "category": "support",
        "title": "Contact Methods",
        "content": (
            "You can reach us via email at support@spurshop.com, live chat on our website during "
            "business hours, or phone at 1-800-IMPULSE."
        ),
        "priority": 9,
    },
    {
        "category": "payment",
        "title": "Accepted Payment Methods",
        "content": (
            "We accept all major credit cards (Visa, MasterCard, American Express, Discover), "
            "PayPal, Apple Pay, and Google Pay."
        ),
        "priority": 10,
    },
    {
        "category": "payment",
        "title": "Payment Security",
        "content": (
            "All transactions are encrypted and secure. We use industry-standard SSL encryption "
            "to protect your payment information."
        ),
        "priority": 8,
    },
    {
        "category": "products",
        "title": "Product Availability",
        "content": (
            "Product availability is updated in real-time on our website. If an item shows as in "
            "stock, it is available for immediate shipment."
        ),
        "priority": 7,
    },
    {
        "category": "products",
        "title": "Product Warranties",
        "content": (
            "All our products come with a manufacturer's warranty. Warranty periods vary by "
            "product - please check the product page for specific details."
        ),
        "priority": 6,
    },
]


def seed_knowledge(session_factory: sessionmaker, entries: List[Dict] = DEFAULT_KNOWLEDGE) -> int:
    """
    Insert ``entries`` if the knowledge table is empty.

    Returns:
        int: number of entries inserted
    """
    def _seed(db) -> int:
        crud = KnowledgeCRUD(db)
        if crud.count() > 0:
            logger.info("📚 Knowledge base already populated, skipping seed")
            return 0
        for entry in entries:
            crud.create(entry["category"], entry["title"], entry["content"], entry["priority"])
        return len(entries)

    inserted = run_in_session(session_factory, _seed)
    if inserted:
        logger.info(f"✅ Seeded {inserted} knowledge entries")
    return inserted


def main() -> int:
    load_dotenv(override=False)
    settings = Settings()
    settings.setup_logging()

    try:
        settings.validate(skip_llm=True)
        engine = create_db_engine(settings.DATABASE_URL)
        init_db(engine)
        seed_knowledge(create_session_factory(engine))
    except SupportChatError as e:
        logger.error(f"❌ Knowledge seeding failed: {e.message}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
