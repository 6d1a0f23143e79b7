"""
Service Registry - Dependency Injection Container for Hearth
"""

import logging
import inspect
from abc import ABC, ABCMeta
from typing import TypeVar, Type, Dict, Any, Optional, Callable, Union, Set
from enum import Enum
from dataclasses import dataclass

logger = logging.getLogger('core.service_registry')

T = TypeVar('T')

class ServiceLifetime(Enum):
    """Service lifetime management options"""
    SINGLETON = "singleton"
    TRANSIENT = "transient"

class ServiceNotFound(Exception):
    """Raised when a requested service is not registered"""
    pass

class CircularDependencyError(Exception):
    """Raised when circular dependencies are detected"""
    pass

class ServiceConfigurationError(Exception):
    """Raised when service configuration is invalid"""
    pass

def _type_name(t: Any) -> str:
    return getattr(t, '__name__', str(t))

@dataclass
class ServiceDefinition:
    """Metadata for a registered service"""
    interface_type: Type
    implementation_type: Optional[Type]
    lifetime: ServiceLifetime
    factory: Optional[Callable] = None
    instance: Optional[Any] = None

class ServiceRegistry:
    """
    Dependency injection container for managing service instances.

    Constructor parameters annotated with a registered type are resolved
    automatically; annotated parameters with defaults are optional.

    Usage:
        registry = ServiceRegistry()
        registry.register(TicketRegistry)
        tickets = registry.get(TicketRegistry)
    """

    def __init__(self):
        self._services: Dict[Type, ServiceDefinition] = {}
        self._resolving: Set[Type] = set()
        logger.info("ServiceRegistry initialized")

    def register(
        self,
        interface_type: Type[T],
        implementation_type: Optional[Type[T]] = None,
        lifetime: ServiceLifetime = ServiceLifetime.SINGLETON,
        factory: Optional[Callable[..., T]] = None
    ) -> 'ServiceRegistry':
        """
        Register a service with the container.

        Args:
            interface_type: The type services are resolved by
            implementation_type: The concrete implementation (if not using factory)
            lifetime: Service lifetime management
            factory: Optional factory function for complex construction

        Returns:
            Self for method chaining

        Raises:
            ServiceConfigurationError: If registration parameters are invalid
        """
        if implementation_type is None and factory is None:
            if self._is_abstract(interface_type):
                raise ServiceConfigurationError(
                    f"Must provide implementation_type or factory for abstract type {interface_type}"
                )
            implementation_type = interface_type

        if implementation_type and factory:
            raise ServiceConfigurationError("Cannot specify both implementation_type and factory")

        if implementation_type and interface_type != implementation_type:
            if not issubclass(implementation_type, interface_type):
                raise ServiceConfigurationError(
                    f"{implementation_type} does not implement {interface_type}"
                )

        self._services[interface_type] = ServiceDefinition(
            interface_type=interface_type,
            implementation_type=implementation_type,
            lifetime=lifetime,
            factory=factory
        )

        target_name = "factory" if factory else _type_name(implementation_type)
        logger.info(f"Registered service: {_type_name(interface_type)} -> {target_name} ({lifetime.value})")
        return self

    def register_instance(self, interface_type: Type[T], instance: T) -> 'ServiceRegistry':
        """Register a pre-created instance as a singleton service"""
        self._services[interface_type] = ServiceDefinition(
            interface_type=interface_type,
            implementation_type=type(instance),
            lifetime=ServiceLifetime.SINGLETON,
            instance=instance
        )

        logger.info(f"Registered instance: {_type_name(interface_type)}")
        return self

    def get(self, interface_type: Type[T]) -> T:
        """
        Resolve a service instance from the container.

        Raises:
            ServiceNotFound: If service is not registered
            CircularDependencyError: If circular dependencies detected
        """
        return self._resolve_service(interface_type)

    def get_optional(self, interface_type: Type[T]) -> Optional[T]:
        try:
            return self.get(interface_type)
        except ServiceNotFound:
            return None

    def is_registered(self, interface_type: Type[T]) -> bool:
        return interface_type in self._services

    def get_registered_services(self) -> Dict[Type, ServiceDefinition]:
        return self._services.copy()

    def _resolve_service(self, interface_type: Type[T]) -> T:
        if interface_type in self._resolving:
            dependency_chain = " -> ".join(_type_name(t) for t in self._resolving)
            raise CircularDependencyError(
                f"Circular dependency detected: {dependency_chain} -> {_type_name(interface_type)}"
            )

        if interface_type not in self._services:
            raise ServiceNotFound(f"Service {_type_name(interface_type)} is not registered")

        service_def = self._services[interface_type]

        if service_def.lifetime == ServiceLifetime.SINGLETON and service_def.instance is not None:
            return service_def.instance

        self._resolving.add(interface_type)
        try:
            if service_def.factory:
                instance = self._call_with_dependencies(service_def.factory)
            else:
                instance = self._call_with_dependencies(service_def.implementation_type)

            if service_def.lifetime == ServiceLifetime.SINGLETON:
                service_def.instance = instance

            logger.debug(f"Resolved service: {_type_name(interface_type)}")
            return instance
        finally:
            self._resolving.discard(interface_type)

    def _call_with_dependencies(self, target: Union[Type, Callable]) -> Any:
        """Invoke a constructor or factory, resolving annotated parameters"""
        if target is None:
            raise ServiceConfigurationError("Nothing to construct")

        signature = inspect.signature(target.__init__ if inspect.isclass(target) else target)
        kwargs = {}

        for param_name, param in signature.parameters.items():
            if param_name == 'self' or param.annotation is inspect.Parameter.empty:
                continue

            if param.default is not inspect.Parameter.empty:
                try:
                    kwargs[param_name] = self._resolve_service(param.annotation)
                except ServiceNotFound:
                    pass
            else:
                kwargs[param_name] = self._resolve_service(param.annotation)

        return target(**kwargs)

    def _is_abstract(self, cls: Type) -> bool:
        return inspect.isabstract(cls) or (isinstance(cls, ABCMeta) and ABC in cls.__bases__)
