import copy
import logging
from enum import Enum, auto

from .exceptions import MalformedSchema


class Endianess(Enum):
    LITTLE_ENDIAN = auto()
    BIG_ENDIAN    = auto()


class FieldDescriptor(object):
    """Wrapper around field access of a Field related class.

    The field passed at class definition is a template: each chunk instance
    gets its own copy the first time the attribute is accessed."""

    def __init__(self, field_instance: "Field", field_name: str):
        self.logger = logging.getLogger(f"{self.__module__}.{self.__class__.__name__}")
        self.field = field_instance
        self.field.name = field_name

    def __get__(self, instance, type=None):
        if instance is None:
            return self.field

        self.logger.debug("__get__ from %s for field named '%s'", instance.__class__.__name__, self.field.name)
        data = instance.__dict__

        if self.field.name in data:
            return data[self.field.name]
        else:
            self.logger.debug("create new field for field named '%s'", self.field.name)
            new_field = self.field.create(father=instance)
            data[self.field.name] = new_field
            return data[self.field.name]

    def __set__(self, instance, value):
        if not isinstance(value, self.field.__class__):
            raise AttributeError(f"field '{self.field.name}' can only be replaced by a {self.field.__class__.__name__}")

        value.father = instance
        value.name = self.field.name
        instance.__dict__[self.field.name] = value


class FieldBase(object):

    def contribute_to_chunk(self, cls, name):
        if not getattr(cls, name, None):
            setattr(cls, name, FieldDescriptor(self, name))
        else:
            raise MalformedSchema([cls.__name__, name], 'field is already present')

    def create(self, father):
        instance = copy.deepcopy(self)
        instance.father = father
        return instance


class Meta(object):
    """Class containing metadata about the abstraction"""

    def __init__(self):
        self.fields = []
        self.templates = {}
        self.size = 0


class MetaChunk(type):

    def __new__(cls, names, bases, attrs):
        '''All of this is a big hack, maybe too inspired by how Django does a similar thing!'''
        module = attrs.pop('__module__')
        classcell = attrs.pop('__classcell__', None)

        new_attrs = {
            '__module__': module,
        }
        if classcell is not None:
            new_attrs['__classcell__'] = classcell
        new_cls = super(MetaChunk, cls).__new__(cls, names, bases, new_attrs)

        new_cls._meta = Meta()

        # handle inheritance
        parents = [_ for _ in bases if isinstance(_, MetaChunk)]
        for parent in parents:
            for obj_name in parent._meta.fields:
                obj = parent.__dict__[obj_name]
                setattr(new_cls, obj_name, obj)
                new_cls._meta.fields.append(obj_name)
                new_cls._meta.templates[obj_name] = obj.field

        for obj_name, obj in attrs.items():
            new_cls.add_to_class(obj_name, obj)

        cls.logger = logging.getLogger(__name__)

        new_cls._meta.size = cls.layout_fields(new_cls)

        return new_cls

    def add_to_class(cls, name, value):
        if hasattr(value, 'contribute_to_chunk'):
            cls.logger.debug('contribute_to_chunk() found for field \'%s\'' % name)
            cls._meta.fields.append(name)
            cls._meta.templates[name] = value
            value.contribute_to_chunk(cls, name)
        else:
            setattr(cls, name, value)

    @staticmethod
    def layout_fields(new_cls):
        '''Assign to every template its offset, checking the declared ones.

        The offset of a field must be equal to the sum of the sizes of the
        preceding fields, anything else is a gap or an overlap.'''
        offset = 0
        for name, template in new_cls._meta.templates.items():
            size = template.size
            if not isinstance(size, int) or size <= 0:
                raise MalformedSchema([new_cls.__name__, name], f'invalid size {size!r}')

            if template.offset is None:
                template.offset = offset
            elif template.offset != offset:
                raise MalformedSchema(
                    [new_cls.__name__, name],
                    f'declared offset 0x{template.offset:02x} but the preceding fields end at 0x{offset:02x}')

            offset += size

        return offset
