#!/usr/bin/env python3
"""
Walkthrough of the basic pydig features on a small order-processing service.

1. Constructors and invoke
2. Named values
3. Value groups
4. Providing a value under an interface with as_types
5. Cycle detection at provide time
6. Missing dependency reporting
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Annotated

from pydig import Container, DigError, Group, Name


@dataclass
class Settings:
    service_name: str
    region: str = "eu-west-1"


class Broker(ABC):
    """Somewhere to publish events."""

    @abstractmethod
    def publish(self, topic: str, payload: str) -> str: ...


class QueueBroker(Broker):
    def __init__(self, url: Annotated[str, Name("broker_url")]):
        self.url = url

    def publish(self, topic: str, payload: str) -> str:
        return f"{self.url}/{topic} <- {payload}"


class AuditTrail:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.entries: list[str] = []

    def record(self, entry: str) -> None:
        self.entries.append(f"{self.settings.service_name}: {entry}")


class OrderService:
    def __init__(self, broker: Broker, audit: AuditTrail):
        self.broker = broker
        self.audit = audit

    def place(self, order_id: int) -> str:
        self.audit.record(f"order {order_id} placed")
        return self.broker.publish("orders", str(order_id))


class EventHandler(ABC):
    @abstractmethod
    def handles(self) -> str: ...


class ShippingHandler(EventHandler):
    def handles(self) -> str:
        return "order.shipped"


class RefundHandler(EventHandler):
    def handles(self) -> str:
        return "order.refunded"


def new_settings() -> Settings:
    return Settings("orders")


def new_broker_url(settings: Settings) -> Annotated[str, Name("broker_url")]:
    return f"amqp://{settings.region}.queue.internal"


def new_shipping_handler() -> Annotated[EventHandler, Group("handlers")]:
    return ShippingHandler()


def new_refund_handler() -> Annotated[EventHandler, Group("handlers")]:
    return RefundHandler()


class Producer:
    def __init__(self, consumer: "Consumer"):
        self.consumer = consumer


class Consumer:
    def __init__(self, producer: Producer):
        self.producer = producer


class Unregistered:
    pass


class NeedsUnregistered:
    def __init__(self, dependency: Unregistered):
        self.dependency = dependency


def section(title: str) -> None:
    print(f"\n{title}")
    print("-" * 30)


def main():
    print("=== pydig demo ===")

    container = Container()
    container.provide(new_settings)
    container.provide(new_broker_url)
    container.provide(QueueBroker, as_types=(Broker,))
    container.provide(AuditTrail)
    container.provide(OrderService)
    container.provide(new_shipping_handler)
    container.provide(new_refund_handler)

    section("1. Building a service on demand")

    def place_order(service: OrderService, audit: AuditTrail) -> None:
        print(service.place(42))
        print(f"audit: {audit.entries}")

    container.invoke(place_order)

    section("2. Named values")

    def show_url(url: Annotated[str, Name("broker_url")]) -> None:
        print(f"broker url: {url}")

    container.invoke(show_url)

    section("3. Value groups")

    def list_handlers(handlers: Annotated[list[EventHandler], Group("handlers")]) -> None:
        for topic in sorted(h.handles() for h in handlers):
            print(f"handler for {topic}")

    container.invoke(list_handlers)

    section("4. Interfaces")

    def same_broker(broker: Broker, queue: QueueBroker) -> None:
        print(f"Broker and QueueBroker are one instance: {broker is queue}")

    container.invoke(same_broker)

    section("5. Cycle detection")

    cyclic = Container()
    cyclic.provide(Producer)
    try:
        cyclic.provide(Consumer)
    except DigError as e:
        print(f"rejected when the cycle is introduced:\n{e}")

    section("6. Missing dependencies")

    incomplete = Container()
    incomplete.provide(NeedsUnregistered)

    def use(service: NeedsUnregistered) -> None:
        print("not reached")

    try:
        incomplete.invoke(use)
    except DigError as e:
        print(f"reported before anything runs:\n{e}")

    print("\nDone.")


if __name__ == "__main__":
    main()
