"""Base factory configuration for polyfactory."""

from polyfactory.factories.sqlalchemy_factory import SQLAlchemyFactory


class BaseFactory(SQLAlchemyFactory):
    """Registry models only: no relationships or foreign keys to populate."""

    __is_base_factory__ = True
    __set_relationships__ = False
    __set_foreign_keys__ = False
