"""
Simple launcher for the Customer Name Resolver.
Runs an interactive console over a small in-memory ledger so that spoken
references ("Raju", "Bharat ATM wala", "usko") can be tried by hand.
"""

import asyncio
from decimal import Decimal

from src.conversation import ConversationMemory, CustomerResolver
from src.models import CustomerRecord
from src.store import InMemoryCustomerStore
from src.utils.config import ResolverSettings
from src.utils.errors import ResolverError
from src.utils.logging_config import logger

DEMO_CUSTOMERS = [
    CustomerRecord(id="c1", name="Rahul Sharma", nickname="Raju", phone="9876543210", landmark="Station Road"),
    CustomerRecord(id="c2", name="Amit Patel", landmark="Temple Gali", balance=Decimal("150")),
    CustomerRecord(id="c3", name="Amit Sharma", landmark="Bus Stand"),
    CustomerRecord(id="c4", name="Bharat Kumar", landmark="SBI ATM"),
    CustomerRecord(id="c5", name="Suresh Yadav", nickname="Suri"),
]


async def main():
    print(" CUSTOMER NAME RESOLVER")
    print("=" * 60)
    print(" Type a customer reference, ':new <name>' to add one,")
    print(" ':pick <id>' to confirm, ':prev' or ':to <name>' to switch, ':q' to quit")
    print("=" * 60)

    settings = ResolverSettings.from_env()
    logger.setLevel(settings.log_level.upper())
    memory = ConversationMemory(settings)
    resolver = CustomerResolver(InMemoryCustomerStore(DEMO_CUSTOMERS), memory, settings)
    conversation_id = "console"
    await memory.start()

    try:
        while True:
            line = (await asyncio.to_thread(input, "\n> ")).strip()
            if not line:
                continue
            if line == ":q":
                break

            try:
                if line.startswith(":new "):
                    result = await resolver.create_customer_fast(line[5:], conversation_id)
                    print(f" {result.message}")
                elif line.startswith(":pick "):
                    customer = await resolver.confirm_selection(line[6:].strip(), conversation_id)
                    print(f" Active: {customer.name}")
                elif line.startswith(":to "):
                    customer = await resolver.switch_to_customer_by_name(line[4:], conversation_id)
                    print(f" Active: {customer.name if customer else 'nobody matched'}")
                elif line == ":prev":
                    customer = await resolver.switch_to_previous_customer(conversation_id)
                    print(f" Active: {customer.name if customer else 'nobody'}")
                else:
                    resolution = await resolver.resolve_ambiguity(line, conversation_id)
                    if resolution.exact:
                        print(f" -> {resolution.exact.name} (balance {resolution.exact.balance})")
                    elif resolution.candidates:
                        print(" Did you mean:")
                        for candidate in resolution.candidates:
                            print(f"   [{candidate.customer.id}] {candidate.customer.name} ({candidate.similarity:.2f})")
                    else:
                        print(" No customer found")
            except ResolverError as e:
                logger.error(f"Resolver error: {e}")
    except (KeyboardInterrupt, EOFError):
        print("\n\n Shutting down gracefully...")
    finally:
        await memory.stop()


if __name__ == "__main__":
    asyncio.run(main())
