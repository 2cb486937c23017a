from sqlalchemy import Column, DateTime, Integer, String, Text, func

from tailorbook.db.base import Base


class Order(Base):
    __tablename__ = 'orders'

    id = Column(Integer, primary_key=True, autoincrement=True)
    unique_id = Column(String(32), unique=True, nullable=False, index=True)

    name = Column(Text, nullable=False, index=True)
    phone = Column(Text, nullable=False, index=True)
    address = Column(Text, nullable=False)

    # Body measurements
    lambai = Column(Text, server_default='', default='')
    bazo = Column(Text, server_default='', default='')
    shoulder = Column(Text, server_default='', default='')
    shoulder_down = Column(Text, server_default='', default='')
    kalar_size = Column(Text, server_default='', default='')
    chati = Column(Text, server_default='', default='')
    mora = Column(Text, server_default='', default='')
    kamar = Column(Text, server_default='', default='')
    gira = Column(Text, server_default='', default='')
    shalwar = Column(Text, server_default='', default='')
    gira_shalwar = Column(Text, server_default='', default='')
    pancha = Column(Text, server_default='', default='')
    daman = Column(Text, server_default='', default='')

    # Style choices
    kanda = Column(Text, server_default='', default='')
    plat = Column(Text, server_default='', default='')
    samne = Column(Text, server_default='', default='')
    samne_size = Column(Text, server_default='', default='')
    dbl_side = Column(Text, server_default='', default='')
    pakat = Column(Text, server_default='', default='')
    pati = Column(Text, server_default='', default='')
    kalar_ban = Column(Text, server_default='', default='')
    kaf = Column(Text, server_default='', default='')
    btn_design = Column(Text, server_default='', default='')
    chamak_pati_btn = Column(Text, server_default='', default='')
    salai = Column(Text, server_default='', default='')
    design_no = Column(Text, server_default='', default='', index=True)
    karigar_name = Column(Text, server_default='', default='')
    size = Column(Text, server_default='', default='')
    notes = Column(Text, server_default='', default='')

    # Order tracking
    order_status = Column(Text, server_default='pending', default='pending', index=True)
    order_date = Column(Text, server_default='', default='', index=True)
    delivery_date = Column(Text, server_default='', default='')
    items_ordered = Column(Text, server_default='', default='')
    total_amount = Column(Integer, server_default='0', default=0)
    advance_payment = Column(Integer, server_default='0', default=0)
    balance_amount = Column(Integer, server_default='0', default=0)
    priority_level = Column(Text, server_default='normal', default='normal')
    # JSON list of {"status", "timestamp"} entries, oldest first
    status_history = Column(Text, server_default='', default='')

    created_at = Column(DateTime, server_default=func.now(), index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Order(unique_id={self.unique_id!r}, name={self.name!r}, status={self.order_status!r})>"
