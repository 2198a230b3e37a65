"""Aggregation of ingress records into an IP -> hostnames address book."""

from typing import Iterable

from .logging_config import get_logger, log_function_entry, log_function_exit
from .models import AddressBook, IngressRecord

logger = get_logger(__name__)


def aggregate(ingresses: Iterable[IngressRecord]) -> AddressBook:
    """Group the hostnames of ``ingresses`` by load-balancer IP.

    Ingresses without an assigned IP are skipped. An ingress with an IP but
    no usable hosts still gets an (empty) entry. Hostnames are kept in
    encounter order and are not deduplicated.
    """
    log_function_entry(logger, "aggregate")

    address_book: AddressBook = {}
    for ingress in ingresses:
        logger.debug("Processing ingress",
                     ingress_name=ingress.name,
                     namespace=ingress.namespace,
                     rules_count=len(ingress.rules))

        ip = ingress.load_balancer_ip
        if not ip:
            logger.info("Skipping ingress without load-balancer IP",
                        ingress_name=ingress.name,
                        namespace=ingress.namespace)
            continue

        hosts = address_book.setdefault(ip, [])
        for rule in ingress.rules:
            if not rule.host:
                logger.debug("Not adding empty host entry", ingress_name=ingress.name, ip=ip)
                continue
            hosts.append(rule.host)

    log_function_exit(logger, "aggregate",
                      ips=len(address_book),
                      hosts=sum(len(h) for h in address_book.values()))
    return address_book
