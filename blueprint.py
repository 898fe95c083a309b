from index import main_bp
from routes.auth import auth_bp
from routes.user import user_bp
from routes.site import site_bp
from routes.material import material_bp
from routes.request import request_bp
from routes.stock import stock_bp
from routes.supplier import supplier_bp
from routes.purchases import purchase_bp
from routes.goods_receipt import gr_bp
from routes.report import report_bp
from routes.system_config import config_bp


def blue_print(app):
    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(user_bp)
    app.register_blueprint(site_bp)
    app.register_blueprint(material_bp)
    app.register_blueprint(request_bp)
    app.register_blueprint(stock_bp)
    app.register_blueprint(supplier_bp)
    app.register_blueprint(purchase_bp)
    app.register_blueprint(gr_bp)
    app.register_blueprint(report_bp)
    app.register_blueprint(config_bp)
