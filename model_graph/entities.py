"""
entities.py

The application model consumed by the graph transformation.

An Application owns Classes; a Class owns Variables and Methods; a Method owns
Arguments. Metrics hang off applications, classes, methods and variables.
Parent, interface, used-variable and called-method links are references into
the same application.

Entities compare and hash by identity: two distinct instances with equal
fields are two entities and become two nodes.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union


class Modifier(Enum):
    """Visibility modifier of a class, method or variable."""
    PUBLIC = "public"
    PROTECTED = "protected"
    PRIVATE = "private"
    DEFAULT = "default"


@dataclass(frozen=True)
class Metric:
    """A precomputed named measurement."""
    name: str
    value: Union[int, float, bool]


@dataclass(eq=False)
class ArgumentEntity:
    """A formal argument of a method."""
    name: str
    position: int
    method: Optional["MethodEntity"] = field(default=None, repr=False)


@dataclass(eq=False)
class VariableEntity:
    """A field declared by a class."""
    name: str
    type_name: str
    modifier: Modifier = Modifier.DEFAULT
    owner: Optional["ClassEntity"] = field(default=None, repr=False)
    metrics: List[Metric] = field(default_factory=list)

    def add_metric(self, name: str, value) -> Metric:
        metric = Metric(name, value)
        self.metrics.append(metric)
        return metric


@dataclass(eq=False)
class MethodEntity:
    """
    A method declared by a class.

    Attributes:
        name (str): Simple method name.
        return_type (str): Declared return type.
        modifier (Modifier): Visibility.
        owner (ClassEntity): Declaring class.
        arguments (List[ArgumentEntity]): Formal arguments, in order.
        used_variables (List[VariableEntity]): Fields read or written, no duplicates.
        called_methods (List[MethodEntity]): Methods invoked, no duplicates.
            May belong to any class of the application, or lie outside it.
    """
    name: str
    return_type: str = "void"
    modifier: Modifier = Modifier.DEFAULT
    owner: Optional["ClassEntity"] = field(default=None, repr=False)
    arguments: List[ArgumentEntity] = field(default_factory=list)
    used_variables: List[VariableEntity] = field(default_factory=list, repr=False)
    called_methods: List["MethodEntity"] = field(default_factory=list, repr=False)
    metrics: List[Metric] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        """Signature string `<name>#<owning class name>`."""
        if self.owner is None:
            return self.name
        return f"{self.name}#{self.owner.name}"

    def add_argument(self, name: str, position: Optional[int] = None) -> ArgumentEntity:
        if position is None:
            position = len(self.arguments)
        argument = ArgumentEntity(name, position, method=self)
        self.arguments.append(argument)
        return argument

    def use_variable(self, variable: VariableEntity):
        if variable not in self.used_variables:
            self.used_variables.append(variable)

    def call(self, method: "MethodEntity"):
        if method not in self.called_methods:
            self.called_methods.append(method)

    def add_metric(self, name: str, value) -> Metric:
        metric = Metric(name, value)
        self.metrics.append(metric)
        return metric


@dataclass(eq=False)
class ClassEntity:
    """
    A class of the application.

    `parent_name` may be set while `parent` is None: the superclass lives
    outside the analyzed application (a platform base class, for instance).
    """
    name: str
    modifier: Modifier = Modifier.PUBLIC
    parent_name: Optional[str] = None
    parent: Optional["ClassEntity"] = field(default=None, repr=False)
    interfaces: List["ClassEntity"] = field(default_factory=list, repr=False)
    app: Optional["Application"] = field(default=None, repr=False)
    variables: List[VariableEntity] = field(default_factory=list)
    methods: List[MethodEntity] = field(default_factory=list)
    metrics: List[Metric] = field(default_factory=list)

    def add_variable(self, name: str, type_name: str,
                     modifier: Modifier = Modifier.DEFAULT) -> VariableEntity:
        variable = VariableEntity(name, type_name, modifier, owner=self)
        self.variables.append(variable)
        return variable

    def add_method(self, name: str, return_type: str = "void",
                   modifier: Modifier = Modifier.DEFAULT) -> MethodEntity:
        method = MethodEntity(name, return_type, modifier, owner=self)
        self.methods.append(method)
        return method

    def extend(self, parent: "ClassEntity"):
        self.parent = parent
        self.parent_name = parent.name

    def implement(self, interface: "ClassEntity"):
        if interface not in self.interfaces:
            self.interfaces.append(interface)

    def add_metric(self, name: str, value) -> Metric:
        metric = Metric(name, value)
        self.metrics.append(metric)
        return metric


@dataclass(eq=False)
class Application:
    """
    The root of an application model.

    `key` distinguishes this application's nodes from those of other
    insertions sharing the same store.
    """
    name: str
    key: str = field(default_factory=lambda: uuid.uuid4().hex)
    category: str = ""
    package: str = ""
    developer: str = ""
    rating: float = 0.0
    nb_download: str = ""
    release_date: str = ""
    size: int = 0
    price: str = ""
    classes: List[ClassEntity] = field(default_factory=list)
    metrics: List[Metric] = field(default_factory=list)

    def add_class(self, name: str, modifier: Modifier = Modifier.PUBLIC,
                  parent_name: Optional[str] = None) -> ClassEntity:
        cls = ClassEntity(name, modifier, parent_name=parent_name, app=self)
        self.classes.append(cls)
        return cls

    def add_metric(self, name: str, value) -> Metric:
        metric = Metric(name, value)
        self.metrics.append(metric)
        return metric
